import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from helpdesk.core.config import Settings, get_settings
from helpdesk.dependencies.services import TicketServiceDep
from helpdesk.security.principal import Principal, Role
from helpdesk.tickets.service import UserNotFoundError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def resolve_user_id_from_token(token: str | None, settings: Settings) -> str:
    """Return the user id the configured token map associates with ``token``."""

    if token is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user_id = settings.auth_tokens.get(token)
    if user_id is None:
        logger.warning("Rejected unknown bearer token")
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")
    return user_id


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    service: TicketServiceDep,
) -> Principal:
    """Resolve the bearer token into the principal acting on this request.

    Tokens are a static mapping to user ids; the role always comes from the
    stored account so a demoted user loses staff rights immediately.
    """

    cached = getattr(request.state, "principal", None)
    if isinstance(cached, Principal):
        return cached

    token = credentials.credentials if credentials is not None else None
    user_id = resolve_user_id_from_token(token, settings)
    try:
        user = await service.get_user(user_id)
    except UserNotFoundError as exc:
        logger.warning("Bearer token maps to missing user %s", user_id)
        raise HTTPException(status_code=401, detail="Invalid authentication credentials") from exc

    principal = user.to_principal()
    request.state.principal = principal
    return principal


def role_required(*roles: Role) -> Callable[[Principal], Principal]:
    """Dependency factory ensuring the current principal has one of ``roles``."""

    allowed = frozenset(roles)

    async def dependency(principal: Annotated[Principal, Depends(get_current_principal)]) -> Principal:
        if principal.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return principal

    return dependency


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
