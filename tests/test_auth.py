"""Tests for agent registration and authentication."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from conftest import TEST_PASSWORD
from echannel.core.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
)


@pytest.fixture
def registration_data() -> dict:
    return {
        "email": "new.agent@example.com",
        "password": "a-long-password",
        "name": "New Agent",
        "company_name": "Channel Partners",
        "contact_number": "+94770000000",
    }


def test_access_and_refresh_tokens_are_not_interchangeable():
    """Test that each token type only decodes as itself."""
    access = create_access_token({"sub": "agent-1"})
    refresh = create_refresh_token({"sub": "agent-1"})

    assert decode_access_token(access)["sub"] == "agent-1"
    assert decode_refresh_token(refresh)["sub"] == "agent-1"
    assert decode_access_token(refresh) is None
    assert decode_refresh_token(access) is None


def test_expired_access_token_is_rejected():
    """Test that expired tokens do not decode."""
    token = create_access_token({"sub": "agent-1"}, expires_delta=timedelta(seconds=-1))
    assert decode_access_token(token) is None


@pytest.mark.asyncio
async def test_register_agent(client: AsyncClient, registration_data: dict):
    """Test self-registration of a booking agent."""
    response = await client.post("/api/v1/auth/register", json=registration_data)

    assert response.status_code == 201
    data = response.json()
    assert data["email"] == registration_data["email"]
    assert data["role"] == "agent"
    assert data["is_active"] is True
    assert "password" not in data
    assert "password_hash" not in data


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, registration_data: dict):
    """Test that an email can only be registered once, ignoring case."""
    await client.post("/api/v1/auth/register", json=registration_data)

    registration_data["email"] = registration_data["email"].upper()
    response = await client.post("/api/v1/auth/register", json=registration_data)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_register_rejects_short_password(client: AsyncClient, registration_data: dict):
    """Test password length validation."""
    registration_data["password"] = "short"
    response = await client.post("/api/v1/auth/register", json=registration_data)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login(client: AsyncClient, test_user: dict):
    """Test email and password login returns tokens and stamps the login."""
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": test_user["email"], "password": TEST_PASSWORD},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert decode_access_token(data["access_token"])["sub"] == str(test_user["id"])
    assert decode_refresh_token(data["refresh_token"])["sub"] == str(test_user["id"])
    assert data["user"]["id"] == str(test_user["id"])
    assert data["user"]["last_login_at"] is not None


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, test_user: dict):
    """Test that a wrong password is unauthorized."""
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": test_user["email"], "password": "not-the-password"},
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_unknown_email(client: AsyncClient):
    """Test that an unknown email gets the same answer as a bad password."""
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@example.com", "password": TEST_PASSWORD},
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_inactive_agent(client: AsyncClient, db_session, test_user: dict):
    """Test that deactivated agents cannot log in."""
    from sqlalchemy import update

    from echannel.models.users import users

    await db_session.execute(
        update(users).where(users.c.id == test_user["id"]).values(is_active=False)
    )
    await db_session.commit()

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": test_user["email"], "password": TEST_PASSWORD},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_refresh_token(client: AsyncClient, test_user: dict):
    """Test exchanging a refresh token for a new pair."""
    refresh = create_refresh_token({"sub": str(test_user["id"])})

    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh})

    assert response.status_code == 200
    data = response.json()
    assert decode_access_token(data["access_token"])["sub"] == str(test_user["id"])


@pytest.mark.asyncio
async def test_refresh_with_access_token_fails(client: AsyncClient, test_user: dict):
    """Test that an access token cannot be used to refresh."""
    access = create_access_token({"sub": str(test_user["id"])})

    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": access})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me(client: AsyncClient, auth_headers: dict, test_user: dict):
    """Test reading the authenticated agent's profile."""
    response = await client.get("/api/v1/auth/me", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(test_user["id"])
    assert data["company_name"] == "Channel Partners"


@pytest.mark.asyncio
async def test_me_with_invalid_token(client: AsyncClient):
    """Test that a forged token is rejected."""
    response = await client.get(
        "/api/v1/auth/me", headers={"Authorization": "Bearer not-a-real-token"}
    )

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_me_for_deactivated_agent(client: AsyncClient, db_session, test_user, auth_headers):
    """Test that a valid token of a deactivated agent is forbidden."""
    from sqlalchemy import update

    from echannel.models.users import users

    await db_session.execute(
        update(users).where(users.c.id == test_user["id"]).values(is_active=False)
    )
    await db_session.commit()

    response = await client.get("/api/v1/auth/me", headers=auth_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_me_for_unknown_agent(client: AsyncClient):
    """Test that a well-formed token for an agent that no longer exists is refused."""
    token = create_access_token({"sub": "00000000-0000-0000-0000-000000000000"})

    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_me_with_malformed_agent_id(client: AsyncClient):
    token = create_access_token({"sub": "agent-1"})

    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
