"""Signup, login, logout and the current user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from prompt_shelf.api.deps import clear_session, get_current_user, issue_session
from prompt_shelf.api.models import LoginRequest, SessionResponse, SignupRequest, UserResponse
from prompt_shelf.core.auth import AuthService, SessionUser, get_auth_service
from prompt_shelf.core.exceptions import AuthenticationFailed

router = APIRouter()


@router.post("/signup", response_model=SessionResponse, status_code=201)
async def signup(
    data: SignupRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    """Register and sign in."""
    user = auth.signup(data.email, data.password, data.name)
    return issue_session(response, user)


@router.post("/login", response_model=SessionResponse)
async def login(
    data: LoginRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    user = auth.authenticate(data.email, data.password)
    return issue_session(response, user)


@router.post("/logout", status_code=204)
async def logout(response: Response) -> None:
    """Drop the session cookie, and with it every unlocked library."""
    clear_session(response)


@router.get("/me", response_model=UserResponse)
async def me(
    user: SessionUser = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> UserResponse:
    row = auth.get_user(user.id)
    if row is None:
        raise AuthenticationFailed("Account no longer exists")
    return UserResponse(**row)
