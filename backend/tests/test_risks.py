"""Tests for the risk register and its risk_controls links."""
import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from grcportal.models import Control, RiskControl

API = "/api/v1/risks"


def _ids(*controls: Control) -> list[str]:
    return [str(c.id) for c in controls]


async def _create_risk(client: AsyncClient, risk_id: str = "R-001", **extra) -> dict:
    r = await client.post(API, json={"risk_id": risk_id, "title": f"Risk {risk_id}", **extra})
    assert r.status_code == 201, r.text
    return r.json()["data"]


async def _link_rows(db: AsyncSession, risk_uuid: str) -> int:
    return (await db.execute(
        select(func.count(RiskControl.id)).where(RiskControl.risk_id == uuid.UUID(risk_uuid))
    )).scalar()


# ═══════════════════ Create / read ═══════════════════

@pytest.mark.asyncio
async def test_create_risk_without_controls(client: AsyncClient):
    risk = await _create_risk(client, treatment="Mitigate", inherent_likelihood="high")
    assert risk["linked_controls"] == []
    assert risk["treatment"] == "Mitigate"
    assert risk["inherent_likelihood"] == "high"

    r = await client.get(f"{API}/{risk['id']}")
    assert r.status_code == 200
    assert r.json()["data"]["title"] == "Risk R-001"


@pytest.mark.asyncio
async def test_create_risk_with_controls_round_trips(client: AsyncClient, seed_controls, db: AsyncSession):
    gov, iac = seed_controls["GOV-01"], seed_controls["IAC-01"]
    risk = await _create_risk(client, linked_controls=_ids(gov, iac))
    assert set(risk["linked_controls"]) == set(_ids(gov, iac))

    r = await client.get(f"{API}/{risk['id']}")
    assert set(r.json()["data"]["linked_controls"]) == set(_ids(gov, iac))
    assert await _link_rows(db, risk["id"]) == 2


@pytest.mark.asyncio
async def test_duplicate_control_ids_are_collapsed(client: AsyncClient, seed_controls, db: AsyncSession):
    gov = seed_controls["GOV-01"]
    risk = await _create_risk(client, linked_controls=_ids(gov, gov))
    assert risk["linked_controls"] == _ids(gov)
    assert await _link_rows(db, risk["id"]) == 1


@pytest.mark.asyncio
async def test_linked_controls_are_sorted(client: AsyncClient, seed_controls):
    ids = _ids(*seed_controls.values())
    risk = await _create_risk(client, linked_controls=list(reversed(sorted(ids))))
    assert risk["linked_controls"] == sorted(ids)


@pytest.mark.asyncio
async def test_list_risks_projects_links(client: AsyncClient, seed_controls):
    await _create_risk(client, "R-1", linked_controls=_ids(seed_controls["GOV-01"]))
    await _create_risk(client, "R-2")

    r = await client.get(API)
    assert r.status_code == 200
    by_id = {risk["risk_id"]: risk for risk in r.json()["data"]}
    assert by_id["R-1"]["linked_controls"] == _ids(seed_controls["GOV-01"])
    assert by_id["R-2"]["linked_controls"] == []


@pytest.mark.asyncio
async def test_get_unknown_risk_404(client: AsyncClient):
    assert (await client.get(f"{API}/{uuid.uuid4()}")).status_code == 404


# ═══════════════════ Create failures ═══════════════════

@pytest.mark.asyncio
async def test_duplicate_risk_id_conflicts(client: AsyncClient):
    await _create_risk(client, "R-001")
    r = await client.post(API, json={"risk_id": "R-001", "title": "Again"})
    assert r.status_code == 409
    assert "R-001" in r.json()["message"]

    assert len((await client.get(API)).json()["data"]) == 1


@pytest.mark.asyncio
async def test_unknown_control_rejected_and_nothing_persisted(client: AsyncClient, seed_controls):
    ghost = str(uuid.uuid4())
    r = await client.post(API, json={
        "risk_id": "R-001", "title": "t", "linked_controls": [*_ids(seed_controls["GOV-01"]), ghost],
    })
    assert r.status_code == 404
    assert ghost in r.json()["message"]
    assert (await client.get(API)).json()["data"] == []


@pytest.mark.asyncio
async def test_create_requires_title(client: AsyncClient):
    r = await client.post(API, json={"risk_id": "R-001"})
    assert r.status_code == 400
    assert any(e["field"] == "title" for e in r.json()["errors"])


@pytest.mark.asyncio
async def test_create_rejects_non_uuid_control(client: AsyncClient):
    r = await client.post(API, json={"risk_id": "R-001", "title": "t", "linked_controls": ["AST-01"]})
    assert r.status_code == 400


# ═══════════════════ Update ═══════════════════

@pytest.mark.asyncio
async def test_update_replaces_link_set(client: AsyncClient, seed_controls, db: AsyncSession):
    gov, iac, cis = seed_controls["GOV-01"], seed_controls["IAC-01"], seed_controls["CIS-1.1"]
    risk = await _create_risk(client, linked_controls=_ids(gov, iac))

    r = await client.put(f"{API}/{risk['id']}", json={"linked_controls": _ids(iac, cis)})
    assert r.status_code == 200
    assert set(r.json()["data"]["linked_controls"]) == set(_ids(iac, cis))
    assert await _link_rows(db, risk["id"]) == 2


@pytest.mark.asyncio
async def test_update_with_same_links_is_idempotent(client: AsyncClient, seed_controls, db: AsyncSession):
    ids = _ids(seed_controls["GOV-01"], seed_controls["IAC-01"])
    risk = await _create_risk(client, linked_controls=ids)

    for _ in range(2):
        r = await client.put(f"{API}/{risk['id']}", json={"linked_controls": ids})
        assert r.status_code == 200
    assert await _link_rows(db, risk["id"]) == 2


@pytest.mark.asyncio
async def test_update_without_links_key_keeps_links(client: AsyncClient, seed_controls):
    ids = _ids(seed_controls["GOV-01"])
    risk = await _create_risk(client, linked_controls=ids)

    r = await client.put(f"{API}/{risk['id']}", json={"title": "Renamed", "residual_impact": "low"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["title"] == "Renamed"
    assert data["residual_impact"] == "low"
    assert data["linked_controls"] == ids


@pytest.mark.asyncio
async def test_update_with_empty_list_clears_links(client: AsyncClient, seed_controls, db: AsyncSession):
    risk = await _create_risk(client, linked_controls=_ids(seed_controls["GOV-01"]))
    r = await client.put(f"{API}/{risk['id']}", json={"linked_controls": []})
    assert r.status_code == 200
    assert r.json()["data"]["linked_controls"] == []
    assert await _link_rows(db, risk["id"]) == 0


@pytest.mark.asyncio
async def test_update_with_unknown_control_changes_nothing(client: AsyncClient, seed_controls):
    ids = _ids(seed_controls["GOV-01"])
    risk = await _create_risk(client, linked_controls=ids)

    r = await client.put(f"{API}/{risk['id']}", json={
        "title": "Should not stick", "linked_controls": [str(uuid.uuid4())],
    })
    assert r.status_code == 404

    data = (await client.get(f"{API}/{risk['id']}")).json()["data"]
    assert data["title"] == "Risk R-001"
    assert data["linked_controls"] == ids


@pytest.mark.asyncio
async def test_update_with_null_links_rejected(client: AsyncClient, seed_controls, db: AsyncSession):
    ids = _ids(seed_controls["GOV-01"])
    risk = await _create_risk(client, linked_controls=ids)

    r = await client.put(f"{API}/{risk['id']}", json={"linked_controls": None})
    assert r.status_code == 400
    assert any(e["field"] == "linked_controls" for e in r.json()["errors"])

    assert (await client.get(f"{API}/{risk['id']}")).json()["data"]["linked_controls"] == ids
    assert await _link_rows(db, risk["id"]) == 1


@pytest.mark.asyncio
async def test_update_risk_id_collision(client: AsyncClient):
    await _create_risk(client, "R-1")
    other = await _create_risk(client, "R-2")
    r = await client.put(f"{API}/{other['id']}", json={"risk_id": "R-1"})
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_links_record_acting_user(client: AsyncClient, seed_controls, db: AsyncSession):
    r = await client.post(
        API,
        json={"risk_id": "R-001", "title": "t", "linked_controls": _ids(seed_controls["GOV-01"])},
        headers={"X-User-Id": "alice"},
    )
    assert r.status_code == 201
    created_by = (await db.execute(select(RiskControl.created_by))).scalars().all()
    assert created_by == ["alice"]


# ═══════════════════ Delete ═══════════════════

@pytest.mark.asyncio
async def test_delete_risk_removes_links(client: AsyncClient, seed_controls, db: AsyncSession):
    risk = await _create_risk(client, linked_controls=_ids(*seed_controls.values()))
    assert await _link_rows(db, risk["id"]) == 3

    r = await client.delete(f"{API}/{risk['id']}")
    assert r.status_code == 204
    assert (await client.get(f"{API}/{risk['id']}")).status_code == 404
    assert await _link_rows(db, risk["id"]) == 0

    # Catalog controls are untouched
    assert (await db.execute(select(func.count(Control.id)))).scalar() == 3


@pytest.mark.asyncio
async def test_deleting_catalog_control_drops_its_links(client: AsyncClient, seed_controls, db: AsyncSession):
    gov, iac = seed_controls["GOV-01"], seed_controls["IAC-01"]
    risk = await _create_risk(client, linked_controls=_ids(gov, iac))

    await db.execute(delete(Control).where(Control.id == gov.id))
    await db.commit()

    data = (await client.get(f"{API}/{risk['id']}")).json()["data"]
    assert data["linked_controls"] == _ids(iac)
