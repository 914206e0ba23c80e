"""Request dependencies — the authenticated caller and session re-issue."""

from __future__ import annotations

from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from prompt_shelf.api.models import SessionResponse, UserResponse
from prompt_shelf.config import get_settings
from prompt_shelf.core.auth import SessionUser, create_session_token, decode_session_token
from prompt_shelf.core.exceptions import AuthenticationFailed

SESSION_COOKIE = "session"

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> SessionUser:
    """Caller from the ``Authorization: Bearer`` header, else the session cookie."""
    token = credentials.credentials if credentials else request.cookies.get(SESSION_COOKIE)
    if not token:
        raise AuthenticationFailed("Not authenticated")
    return decode_session_token(token)


def issue_session(response: Response, user: SessionUser) -> SessionResponse:
    """Sign ``user`` into a new token, set it as the cookie and return it."""
    settings = get_settings()
    token = create_session_token(user)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=settings.session_ttl_days * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )
    return SessionResponse(
        token=token,
        user=UserResponse(id=user.id, email=user.email, name=user.name),
        unlocked=sorted(user.unlocked),
    )


def clear_session(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE)
