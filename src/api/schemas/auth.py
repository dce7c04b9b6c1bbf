"""Signup, login and token schemas."""

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    """Username and password pair used for signup and login."""

    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6, max_length=128)


class UserInfo(BaseModel):
    """Public view of a user."""

    id: str
    username: str


class TokenResponse(BaseModel):
    """Bearer token issued on signup or login."""

    token: str = Field(description="Bearer token to send in the Authorization header")
    token_type: str = "bearer"
    user: UserInfo
