"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from src.core.auth import AuthService, SessionContext, get_auth_service
from src.core.errors import UnauthorizedError


async def get_session_context(
    request: Request,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> SessionContext:
    """Authenticate the request from its ``Authorization: Bearer`` header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.lower().startswith("bearer "):
        raise HTTPException(
            status_code=401,
            detail="Missing Bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(
            status_code=401,
            detail="Missing Bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return auth.authenticate(token)
    except UnauthorizedError as e:
        raise HTTPException(
            status_code=401, detail=e.message, headers={"WWW-Authenticate": "Bearer"}
        ) from e


CurrentSession = Annotated[SessionContext, Depends(get_session_context)]
