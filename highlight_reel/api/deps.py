import hmac
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from highlight_reel.config import get_settings
from highlight_reel.exceptions import EventAccessDeniedError
from highlight_reel.service import HighlightReelService
from highlight_reel.services.asset_selector import EventRef

settings = get_settings()

# Use auto_error=False to allow dev token bypass
security = HTTPBearer(auto_error=False)

# DEV_USER token constant
DEV_TOKEN = "dev-token"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller. Service principals may manage every event."""

    id: str
    is_service: bool = False


async def get_current_principal(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Principal:
    """Authenticate the caller.

    Authentication priority:
    1. Shared service token (trusted backend callers)
    2. dev-token bypass (dev_mode only)
    """
    token = credentials.credentials if credentials else None

    if token and settings.service_token and hmac.compare_digest(token, settings.service_token):
        return Principal(id="service", is_service=True)

    if settings.dev_mode and (token == DEV_TOKEN or token is None):
        return Principal(id=settings.dev_user_id)

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_reel_service(request: Request) -> HighlightReelService:
    return request.app.state.reel_service


def ensure_event_access(principal: Principal, event: EventRef) -> None:
    """Only the event host (or a service principal) may render, list or delete reels."""
    if principal.is_service:
        return
    if event.host_id is None or event.host_id != principal.id:
        raise EventAccessDeniedError()


# Type aliases for dependency injection
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
ReelService = Annotated[HighlightReelService, Depends(get_reel_service)]
