from datetime import datetime, timezone

import pytest

from helpdesk.tickets.state import TicketStateMachine, TicketStatus

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
EARLIER = datetime(2024, 4, 1, 12, 0, tzinfo=timezone.utc)


def test_new_tickets_start_open():
    assert TicketStateMachine.initial_state() == TicketStatus.OPEN


def test_closing_stamps_closed_at_once():
    assert TicketStateMachine.closed_at_for(TicketStatus.CLOSED, None, NOW) == NOW
    assert TicketStateMachine.closed_at_for(TicketStatus.CLOSED, EARLIER, NOW) == EARLIER


@pytest.mark.parametrize("status", [TicketStatus.OPEN, TicketStatus.ASSIGNED, TicketStatus.RESOLVED])
def test_leaving_closed_clears_closed_at(status):
    assert TicketStateMachine.closed_at_for(status, EARLIER, NOW) is None


def test_assignment_advances_only_open_tickets():
    assert TicketStateMachine.status_after_assignment(TicketStatus.OPEN) == TicketStatus.ASSIGNED
    assert TicketStateMachine.status_after_assignment(TicketStatus.RESOLVED) == TicketStatus.RESOLVED
    assert TicketStateMachine.status_after_assignment(TicketStatus.CLOSED) == TicketStatus.CLOSED


def test_unassignment_reverts_assigned_but_keeps_finished_states():
    assert TicketStateMachine.status_after_unassignment(TicketStatus.ASSIGNED) == TicketStatus.OPEN
    assert TicketStateMachine.status_after_unassignment(TicketStatus.OPEN) == TicketStatus.OPEN
    assert TicketStateMachine.status_after_unassignment(TicketStatus.RESOLVED) == TicketStatus.RESOLVED
    assert TicketStateMachine.status_after_unassignment(TicketStatus.CLOSED) == TicketStatus.CLOSED

