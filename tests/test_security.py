"""Tests for token verification and role guards."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.api.v1.deps import get_current_actor
from app.core.security import actor_from_payload, create_access_token, decode_access_token
from app.main import app


@pytest.fixture
def real_auth(async_client):
    """Use real token verification instead of the HR override."""
    app.dependency_overrides.pop(get_current_actor, None)


def test_token_carries_actor_claims():
    token = create_access_token("hr-9", role="hr_admin", tenant_id="north", name="Dana")
    actor = actor_from_payload(decode_access_token(token))

    assert actor.id == "hr-9"
    assert actor.role == "hr_admin"
    assert actor.tenant_id == "north"
    assert actor.display_name == "Dana"


def test_expired_or_tampered_tokens_rejected():
    expired = create_access_token("hr-9", role="hr_admin", expires_delta=timedelta(minutes=-1))
    assert decode_access_token(expired) is None
    assert decode_access_token("not-a-token") is None


def test_token_without_role_has_no_actor():
    assert actor_from_payload({"sub": "x"}) is None


@pytest.mark.asyncio
async def test_missing_token_is_unauthorized(async_client: AsyncClient, real_auth):
    resp = await async_client.get("/api/v1/attendance")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_bearer_token_is_accepted(async_client: AsyncClient, real_auth):
    token = create_access_token("hr-2", role="hr_admin")
    resp = await async_client.get(
        "/api/v1/attendance",
        params={"date": "2024-03-04"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_cookie_token_is_accepted(async_client: AsyncClient, real_auth):
    token = create_access_token("hr-2", role="hr_admin")
    async_client.cookies.set("access_token", token)
    resp = await async_client.get("/api/v1/settings")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_teacher_role_cannot_lock(async_client: AsyncClient, real_auth):
    token = create_access_token("t-1", role="teacher")
    resp = await async_client.post(
        "/api/v1/attendance/lock",
        json={"start": "2024-03-01", "end": "2024-03-31"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 403
