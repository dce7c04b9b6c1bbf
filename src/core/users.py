"""User storage backends."""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as redis
from pydantic import BaseModel
from redis.exceptions import RedisError

from src.config import get_settings
from src.core.errors import ConflictError, StoreError


class User(BaseModel):
    """A registered user."""

    id: str
    username: str
    password_hash: str
    created_at: datetime


class UserStore(ABC):
    """Abstract user store keyed by id, with unique usernames."""

    @abstractmethod
    async def create(self, username: str, password_hash: str) -> User:
        """Create a user. Raises ConflictError if the username is taken."""

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[User]:
        """Look a user up by username."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[User]:
        """Look a user up by id."""

    async def close(self) -> None:
        """Release backend resources."""


def _new_user(username: str, password_hash: str) -> User:
    return User(
        id=uuid.uuid4().hex,
        username=username,
        password_hash=password_hash,
        created_at=datetime.now(timezone.utc),
    )


class InMemoryUserStore(UserStore):
    """Dict-backed user store."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._by_username: dict[str, str] = {}

    async def create(self, username: str, password_hash: str) -> User:
        if username in self._by_username:
            raise ConflictError(f"Username '{username}' is already taken")
        user = _new_user(username, password_hash)
        self._users[user.id] = user
        self._by_username[username] = user.id
        return user

    async def get_by_username(self, username: str) -> Optional[User]:
        user_id = self._by_username.get(username)
        return self._users.get(user_id) if user_id else None

    async def get(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)


class RedisUserStore(UserStore):
    """Redis-backed user store: ``user:{id}`` documents plus a ``users:username`` index."""

    USERNAME_KEY = "users:username"

    def __init__(self, url: Optional[str] = None, client: Optional[redis.Redis] = None) -> None:
        if client is None:
            if not url:
                raise ValueError("RedisUserStore needs a url or a client")
            client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        self._client = client

    async def create(self, username: str, password_hash: str) -> User:
        user = _new_user(username, password_hash)
        try:
            # HSETNX claims the username atomically
            claimed = await self._client.hsetnx(self.USERNAME_KEY, username, user.id)
            if not claimed:
                raise ConflictError(f"Username '{username}' is already taken")
            await self._client.set(f"user:{user.id}", user.model_dump_json())
        except RedisError as e:
            raise StoreError(f"Failed to store user: {e}") from e
        return user

    async def get_by_username(self, username: str) -> Optional[User]:
        try:
            user_id = await self._client.hget(self.USERNAME_KEY, username)
        except RedisError as e:
            raise StoreError(f"Failed to fetch user: {e}") from e
        return await self.get(user_id) if user_id else None

    async def get(self, user_id: str) -> Optional[User]:
        try:
            doc = await self._client.get(f"user:{user_id}")
        except RedisError as e:
            raise StoreError(f"Failed to fetch user: {e}") from e
        return User.model_validate_json(doc) if doc else None

    async def close(self) -> None:
        await self._client.aclose()


# Singleton instance
_user_store: UserStore | None = None


def get_user_store() -> UserStore:
    """Get or create the user store singleton for the configured backend."""
    global _user_store
    if _user_store is None:
        settings = get_settings()
        if settings.store_backend == "redis":
            _user_store = RedisUserStore(settings.redis_url)
        else:
            _user_store = InMemoryUserStore()
    return _user_store


def reset_user_store() -> None:
    """Drop the singleton so the next call builds a fresh store."""
    global _user_store
    _user_store = None
