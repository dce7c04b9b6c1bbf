"""Password hashing, bearer tokens and the authenticated session context."""

import hashlib
import secrets
import time
from dataclasses import dataclass

import structlog
from authlib.jose import JoseError, jwt

from src.config import Settings, get_settings
from src.core.errors import UnauthorizedError
from src.core.users import User, UserStore, get_user_store

logger = structlog.get_logger(__name__)

PBKDF2_ITERATIONS = 100_000


def hash_password(password: str, salt: str | None = None) -> str:
    """Hash a password with PBKDF2-SHA256.

    Returns ``pbkdf2_sha256$<iterations>$<salt>$<hex digest>``.
    """
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS
    ).hex()
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest}"


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a hash produced by ``hash_password``."""
    try:
        algorithm, iterations, salt, expected = password_hash.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations)
    ).hex()
    return secrets.compare_digest(digest, expected)


@dataclass(frozen=True)
class SessionContext:
    """Identity resolved from a verified bearer token.

    This is what the book service receives; the raw token never travels past
    the authentication boundary.
    """

    user_id: str
    username: str


class TokenService:
    """Issues and verifies HS256 JWT bearer tokens."""

    def __init__(self, settings: Settings) -> None:
        self._secret = settings.jwt_secret
        self._issuer = settings.jwt_issuer
        self._ttl = settings.token_ttl_seconds

    def issue(self, user: User, expires_in: int | None = None) -> str:
        """Issue a signed token for ``user``."""
        now = int(time.time())
        payload = {
            "sub": user.id,
            "username": user.username,
            "iss": self._issuer,
            "iat": now,
            "exp": now + (self._ttl if expires_in is None else expires_in),
        }
        token = jwt.encode({"alg": "HS256", "typ": "JWT"}, payload, self._secret)
        return token.decode("utf-8")

    def verify(self, token: str) -> SessionContext:
        """Verify signature, issuer and expiry; raise UnauthorizedError otherwise."""
        claims_options = {
            "iss": {"essential": True, "value": self._issuer},
            "sub": {"essential": True},
            "exp": {"essential": True},
        }
        try:
            claims = jwt.decode(token, self._secret, claims_options=claims_options)
            claims.validate()
        except JoseError as e:
            logger.info("Rejected bearer token", error=str(e))
            raise UnauthorizedError("Token is not valid") from e
        except ValueError as e:
            # malformed segments can surface as ValueError before JOSE parsing
            logger.info("Rejected bearer token", error=str(e))
            raise UnauthorizedError("Token is not valid") from e

        return SessionContext(user_id=claims["sub"], username=claims.get("username", ""))


class AuthService:
    """Signup and login on top of a user store."""

    def __init__(self, users: UserStore, tokens: TokenService) -> None:
        self._users = users
        self._tokens = tokens

    async def signup(self, username: str, password: str) -> tuple[User, str]:
        """Register a new user and return it with a fresh token."""
        user = await self._users.create(username, hash_password(password))
        logger.info("User signed up", user_id=user.id, username=username)
        return user, self._tokens.issue(user)

    async def login(self, username: str, password: str) -> tuple[User, str]:
        """Check credentials and return the user with a fresh token."""
        user = await self._users.get_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Login failed", username=username)
            raise UnauthorizedError("Invalid username or password")
        logger.info("User logged in", user_id=user.id)
        return user, self._tokens.issue(user)

    def authenticate(self, token: str) -> SessionContext:
        """Resolve a bearer token to a session context."""
        return self._tokens.verify(token)


def get_token_service() -> TokenService:
    """Build a token service from the current settings."""
    return TokenService(get_settings())


def get_auth_service() -> AuthService:
    """Build an auth service over the user store singleton."""
    return AuthService(get_user_store(), get_token_service())
