"""Authorization hook and error envelope."""
import pytest
from httpx import AsyncClient

from grcportal.main import app
from grcportal.permissions import AllowAllPolicy, get_policy, set_policy


class _ReadOnlyPolicy:
    def is_allowed(self, user_id, permission):
        return permission.endswith(":read")


@pytest.fixture
def read_only():
    app.dependency_overrides[get_policy] = _ReadOnlyPolicy
    yield
    app.dependency_overrides.pop(get_policy, None)


@pytest.mark.asyncio
async def test_default_policy_allows_writes(client: AsyncClient):
    r = await client.post("/api/v1/risks", json={"risk_id": "R-1", "title": "t"})
    assert r.status_code == 201


@pytest.mark.asyncio
async def test_denied_permission_is_403(client: AsyncClient, read_only):
    assert (await client.get("/api/v1/risks")).status_code == 200

    r = await client.post("/api/v1/risks", json={"risk_id": "R-1", "title": "t"})
    assert r.status_code == 403
    body = r.json()
    assert body["message"] == "Missing permission: risks:write"
    assert body["path"] == "/api/v1/risks"

    # Nothing was written
    assert (await client.get("/api/v1/risks")).json()["data"] == []


@pytest.mark.asyncio
async def test_error_envelope_shape(client: AsyncClient):
    r = await client.get("/api/v1/frameworks/not-a-uuid")
    assert r.status_code == 400
    body = r.json()
    assert set(body) >= {"status_code", "message", "errors", "timestamp", "path"}
    assert body["status_code"] == 400
    assert body["path"] == "/api/v1/frameworks/not-a-uuid"


@pytest.mark.asyncio
async def test_set_policy_replaces_default(client: AsyncClient):
    set_policy(_ReadOnlyPolicy())
    try:
        r = await client.put("/api/v1/controls/00000000-0000-0000-0000-000000000000", json={})
        assert r.status_code == 403
        assert r.json()["message"] == "Missing permission: controls:write"
    finally:
        set_policy(AllowAllPolicy())
