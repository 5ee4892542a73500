from fastapi import APIRouter

from helpdesk.dependencies.auth import CurrentPrincipal

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Public health check")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/me", summary="Echo the authenticated principal")
async def whoami(principal: CurrentPrincipal) -> dict[str, str]:
    return {"status": "ok", "id": principal.id, "role": principal.role.value}
