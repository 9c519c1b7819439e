"""
Tests for authentication endpoints: registration, login and the current user.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from college_events.core.config import get_settings
from college_events.models import User
from college_events.models.status import UserRole
from college_events.services.auth_service import ensure_bootstrap_admin


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    """Successful registration returns user data."""
    response = await client.post("/api/v1/auth/register", json={
        "name": "New Student",
        "email": "New.Student@College.edu",
        "password": "securepassword123",
    })
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "new.student@college.edu"
    assert data["role"] == "student"
    assert "credential_hash" not in data  # Never expose password hash


@pytest.mark.asyncio
async def test_register_faculty(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={
        "name": "Prof Faculty",
        "email": "prof@college.edu",
        "password": "securepassword123",
        "role": "faculty",
    })
    assert response.status_code == 201
    assert response.json()["role"] == "faculty"


@pytest.mark.asyncio
async def test_register_admin_not_allowed(client: AsyncClient):
    """Admins are provisioned, not self-registered."""
    response = await client.post("/api/v1/auth/register", json={
        "name": "Sneaky",
        "email": "sneaky@college.edu",
        "password": "securepassword123",
        "role": "admin",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, student):
    """Duplicate email returns 409."""
    response = await client.post("/api/v1/auth/register", json={
        "name": "Someone Else",
        "email": student.email.upper(),
        "password": "securepassword123",
    })
    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_register_weak_password(client: AsyncClient):
    """Password under 8 chars returns 422."""
    response = await client.post("/api/v1/auth/register", json={
        "name": "Weak",
        "email": "weak@college.edu",
        "password": "short",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, student):
    """Valid credentials return JWT token."""
    response = await client.post("/api/v1/auth/login", json={
        "email": student.email,
        "password": "testpassword123",
    })
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, student):
    """Invalid password returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": student.email,
        "password": "wrongpassword",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_nonexistent_user(client: AsyncClient):
    response = await client.post("/api/v1/auth/login", json={
        "email": "nobody@college.edu",
        "password": "whatever123",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_returns_current_user(client: AsyncClient, student, student_headers):
    response = await client.get("/api/v1/auth/me", headers=student_headers)
    assert response.status_code == 200
    assert response.json()["id"] == student.id


@pytest.mark.asyncio
async def test_me_requires_token(client: AsyncClient):
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_rejects_garbage_token(client: AsyncClient):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_bootstrap_admin_created_once(db_session, monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_EMAIL", "root@college.edu")
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_PASSWORD", "rootpassword123")

    await ensure_bootstrap_admin(db_session)
    await ensure_bootstrap_admin(db_session)

    result = await db_session.execute(select(User).where(User.email == "root@college.edu"))
    admins = result.scalars().all()
    assert len(admins) == 1
    assert admins[0].role == UserRole.admin.value
