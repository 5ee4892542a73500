"""Help-desk ticketing API."""
