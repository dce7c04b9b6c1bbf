"""Tests for signup, login and bearer token verification."""

from datetime import datetime, timezone

import pytest

from src.config import get_settings
from src.core.auth import TokenService, hash_password, verify_password
from src.core.errors import UnauthorizedError
from src.core.users import User


def _user(user_id: str = "u1", username: str = "alice") -> User:
    return User(
        id=user_id,
        username=username,
        password_hash=hash_password("irrelevant"),
        created_at=datetime.now(timezone.utc),
    )


def test_signup_returns_usable_token(client):
    response = client.post("/auth/signup", json={"username": "alice", "password": "secret-pw"})
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["username"] == "alice"

    headers = {"Authorization": f"Bearer {data['token']}"}
    assert client.get("/books", headers=headers).status_code == 200
    assert client.get("/auth/me", headers=headers).json() == data["user"]


def test_login_after_signup(client):
    client.post("/auth/signup", json={"username": "alice", "password": "secret-pw"})

    response = client.post("/auth/login", json={"username": "alice", "password": "secret-pw"})
    assert response.status_code == 200
    token = response.json()["token"]
    assert client.get("/books", headers={"Authorization": f"Bearer {token}"}).status_code == 200


def test_duplicate_username_conflicts(client):
    client.post("/auth/signup", json={"username": "alice", "password": "secret-pw"})
    response = client.post("/auth/signup", json={"username": "alice", "password": "other-pw"})
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"


@pytest.mark.parametrize(
    "username,password",
    [("alice", "wrong-password"), ("nobody", "secret-pw")],
)
def test_login_failures_look_the_same(client, username, password):
    client.post("/auth/signup", json={"username": "alice", "password": "secret-pw"})
    response = client.post("/auth/login", json={"username": username, "password": password})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid username or password"


def test_signup_validates_credentials(client):
    response = client.post("/auth/signup", json={"username": "al", "password": "x"})
    assert response.status_code == 422


def test_expired_token_rejected(client):
    token = TokenService(get_settings()).issue(_user(), expires_in=-60)
    response = client.get("/books", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_tampered_token_rejected(client):
    token = TokenService(get_settings()).issue(_user())
    header, payload, signature = token.split(".")
    forged = ".".join([header, payload, signature[::-1]])
    response = client.get("/books", headers={"Authorization": f"Bearer {forged}"})
    assert response.status_code == 401


def test_token_from_other_secret_rejected():
    settings = get_settings().model_copy(update={"jwt_secret": "another-secret"})
    token = TokenService(settings).issue(_user())
    with pytest.raises(UnauthorizedError):
        TokenService(get_settings()).verify(token)


def test_token_round_trip_carries_identity_only():
    session = TokenService(get_settings()).verify(TokenService(get_settings()).issue(_user("u42", "zoe")))
    assert session.user_id == "u42"
    assert session.username == "zoe"
    assert not hasattr(session, "token")


def test_password_hashing():
    stored = hash_password("hunter22")
    assert stored.startswith("pbkdf2_sha256$")
    assert "hunter22" not in stored
    assert verify_password("hunter22", stored)
    assert not verify_password("hunter23", stored)
    assert not verify_password("hunter22", "garbage")
    assert hash_password("hunter22") != stored  # salted
