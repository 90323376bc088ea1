from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status

from .config import Settings, get_settings

logger = logging.getLogger("soundwave.security")

USER_HEADER = "X-User-Id"


@dataclass(frozen=True, slots=True)
class UserContext:
    """Identity of the caller for a single request.

    Supplied by the session layer in front of this service; anonymous callers
    are represented by the configured guest id rather than by ``None``.
    """

    user_id: str
    is_guest: bool = False


def resolve_user(request: Request, settings: Settings = Depends(get_settings)) -> UserContext:
    provided = request.headers.get(USER_HEADER, "").strip()
    if not provided:
        return UserContext(user_id=settings.guest_user_id, is_guest=True)
    return UserContext(user_id=provided, is_guest=provided == settings.guest_user_id)


def verify_service_token(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    expected = settings.service_token
    if not expected:
        # No token configured: admin routes stay open (local development), warn once.
        if not getattr(request.app.state, "service_token_warning", False):
            logger.warning("admin routes are unprotected; set SOUNDWAVE_SERVICE_TOKEN")
            request.app.state.service_token_warning = True  # type: ignore[attr-defined]
        return

    provided = request.headers.get("X-Service-Token", "")
    if not provided or not secrets.compare_digest(provided, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid service token")
