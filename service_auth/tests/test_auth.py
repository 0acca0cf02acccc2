"""
Tests for Auth service.
"""

import asyncio
import time

import jwt
import pytest
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_auth.app.main import AuthService, create_app
from service_auth.app.security import PasswordHasher, TokenIssuer
from shared.errors import AuthenticationError
from shared.storage import InMemoryStorage


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def client(storage):
    """Create test client."""
    return TestClient(create_app(storage=storage))


@pytest.fixture
def credentials():
    return {"email": "john.doe@example.com", "password": "password123"}


def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["service"] == "auth"


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "auth"
    assert data["status"] == "ok"
    assert data["storage"] == "memory"


def test_register(client, storage, credentials):
    response = client.post("/register", json=credentials)
    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "User registered successfully"
    assert data["userId"] == "1"


@pytest.mark.asyncio
async def test_password_is_stored_hashed(storage, credentials):
    client = TestClient(create_app(storage=storage))
    client.post("/register", json=credentials)

    user = await storage.collection("users").find_one(email=credentials["email"])
    assert user["password"] != credentials["password"]
    assert user["password"].startswith("$2")
    assert user["created_at"]


@pytest.mark.asyncio
async def test_duplicate_email_rejected(client, storage, credentials):
    assert client.post("/register", json=credentials).status_code == 201

    response = client.post("/register", json={**credentials, "password": "other"})
    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "DUPLICATE_RESOURCE"
    assert data["message"] == "User already exists"
    assert await storage.collection("users").count() == 1


@pytest.mark.parametrize("payload", [
    {"email": "a@example.com"},
    {"password": "secret"},
    {"email": "", "password": "secret"},
    {"email": "   ", "password": "secret"},
    {"email": "a@example.com", "password": ""},
    {"email": "a@example.com", "password": "x" * 73},
])
def test_register_validation(client, payload):
    response = client.post("/register", json=payload)
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_login_success(client, credentials):
    client.post("/register", json=credentials)

    response = client.post("/login", json=credentials)
    assert response.status_code == 200
    data = response.json()
    assert data["email"] == credentials["email"]

    claims = jwt.decode(data["token"], "supersecretkey", algorithms=["HS256"])
    assert claims["email"] == credentials["email"]
    assert claims["userId"] == "1"
    assert claims["exp"] - claims["iat"] == 3600


def test_login_wrong_password(client, credentials):
    client.post("/register", json=credentials)

    response = client.post("/login", json={**credentials, "password": "wrong"})
    assert response.status_code == 401
    data = response.json()
    assert data["code"] == "AUTHENTICATION_ERROR"
    assert "token" not in data


def test_login_unknown_user(client, credentials):
    response = client.post("/login", json=credentials)
    assert response.status_code == 400
    assert response.json()["code"] == "UNKNOWN_USER"


def test_login_missing_fields(client):
    response = client.post("/login", json={"email": "a@example.com"})
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_concurrent_registrations_of_one_email(storage, credentials):
    """Only one of two interleaved registrations may succeed."""
    import httpx

    service = AuthService(storage=storage)
    transport = httpx.ASGITransport(app=service.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://auth") as client:
        responses = await asyncio.gather(
            client.post("/register", json=credentials),
            client.post("/register", json=credentials),
        )

    assert sorted(response.status_code for response in responses) == [201, 400]
    assert await storage.collection("users").count() == 1
    assert service._registration_locks == {}


@pytest.mark.asyncio
async def test_registration_lock_released_after_use(storage):
    service = AuthService(storage=storage)

    async with service._registration_lock("a@example.com"):
        assert service._registration_locks["a@example.com"][1] == 1
        waiter = asyncio.ensure_future(_hold(service, "a@example.com"))
        await asyncio.sleep(0)
        assert service._registration_locks["a@example.com"][1] == 2

    await waiter
    assert service._registration_locks == {}


@pytest.mark.asyncio
async def test_registration_lock_released_after_error(storage):
    service = AuthService(storage=storage)

    with pytest.raises(RuntimeError):
        async with service._registration_lock("a@example.com"):
            raise RuntimeError("insert failed")

    assert service._registration_locks == {}


async def _hold(service, email):
    async with service._registration_lock(email):
        pass


class TestCredentials:
    """Unit tests for hashing and token helpers."""

    @pytest.mark.asyncio
    async def test_hash_and_verify(self):
        hasher = PasswordHasher(rounds=4)
        hashed = await hasher.hash("s3cret")

        assert await hasher.verify("s3cret", hashed) is True
        assert await hasher.verify("nope", hashed) is False

    @pytest.mark.asyncio
    async def test_verify_malformed_hash(self):
        assert await PasswordHasher(rounds=4).verify("s3cret", "not-a-hash") is False

    def test_issue_and_decode(self):
        issuer = TokenIssuer("secret", expires_seconds=60)
        claims = issuer.decode(issuer.issue("42", "a@example.com"))

        assert claims["userId"] == "42"
        assert claims["email"] == "a@example.com"
        assert claims["exp"] - claims["iat"] == 60

    def test_expired_token_rejected(self):
        issuer = TokenIssuer("secret")
        token = jwt.encode(
            {"userId": "42", "email": "a@example.com", "exp": int(time.time()) - 10},
            "secret",
            algorithm="HS256"
        )
        with pytest.raises(AuthenticationError):
            issuer.decode(token)

    def test_token_signed_with_other_secret_rejected(self):
        token = TokenIssuer("other").issue("42", "a@example.com")
        with pytest.raises(AuthenticationError):
            TokenIssuer("secret").decode(token)
