"""Signup and login endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from src.api.deps import CurrentSession
from src.api.schemas.auth import Credentials, TokenResponse, UserInfo
from src.api.schemas.books import ErrorResponse
from src.core.auth import AuthService, get_auth_service
from src.core.users import UserStore, get_user_store

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/signup", response_model=TokenResponse, responses={409: {"model": ErrorResponse}})
async def signup(
    credentials: Credentials,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenResponse:
    """Register a user and return a bearer token."""
    user, token = await auth.signup(credentials.username, credentials.password)
    return TokenResponse(token=token, user=UserInfo(id=user.id, username=user.username))


@router.post("/login", response_model=TokenResponse, responses={401: {"model": ErrorResponse}})
async def login(
    credentials: Credentials,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenResponse:
    """Exchange a username and password for a bearer token."""
    user, token = await auth.login(credentials.username, credentials.password)
    return TokenResponse(token=token, user=UserInfo(id=user.id, username=user.username))


@router.get("/me", response_model=UserInfo)
async def me(
    session: CurrentSession,
    users: Annotated[UserStore, Depends(get_user_store)],
) -> UserInfo:
    """Return the user the bearer token belongs to."""
    user = await users.get(session.user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User no longer exists")
    return UserInfo(id=user.id, username=user.username)
