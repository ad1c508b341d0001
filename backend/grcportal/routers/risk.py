"""
Risk register -- /api/v1/risks

Risks carry linked_controls: the ids of catalog controls that mitigate
them. The list is stored only as risk_controls junction rows and is
rebuilt from them on every read.

PUT semantics for linked_controls: if the key is present (even []),
the complete link set is replaced; if absent, links are untouched.
"""
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from grcportal.database import get_session
from grcportal.middleware.request_context import current_user_id
from grcportal.models.base import utcnow
from grcportal.models.risk import Risk
from grcportal.permissions import require_permission
from grcportal.schemas.common import DataResponse
from grcportal.schemas.risk import RiskCreate, RiskOut, RiskUpdate
from grcportal.services.risk_controls import (
    delete_links,
    linked_control_map,
    linked_controls,
    missing_controls,
    replace_links,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/risks", tags=["Risks"])

_read = require_permission("risks:read")
_write = require_permission("risks:write")

_REQUIRED = ("risk_id", "title")


# -- helpers --

def _risk_out(risk: Risk, control_ids: list[uuid.UUID]) -> RiskOut:
    return RiskOut(
        id=risk.id,
        risk_id=risk.risk_id,
        title=risk.title,
        description=risk.description,
        inherent_likelihood=risk.inherent_likelihood,
        inherent_impact=risk.inherent_impact,
        residual_likelihood=risk.residual_likelihood,
        residual_impact=risk.residual_impact,
        risk_level=risk.risk_level,
        treatment=risk.treatment,
        threats=risk.threats,
        stakeholders=risk.stakeholders,
        creator=risk.creator,
        business_unit=risk.business_unit,
        risk_owner=risk.risk_owner,
        assets=risk.assets,
        linked_controls=control_ids,
        created_at=risk.created_at,
        updated_at=risk.updated_at,
    )


async def _get_risk(s: AsyncSession, risk_uuid: uuid.UUID) -> Risk:
    risk = await s.get(Risk, risk_uuid)
    if not risk:
        raise HTTPException(404, f"Risk with ID {risk_uuid} not found")
    return risk


async def _ensure_risk_id_free(s: AsyncSession, risk_id: str) -> None:
    taken = (await s.execute(select(Risk.id).where(Risk.risk_id == risk_id))).scalar()
    if taken:
        raise HTTPException(409, f"Risk with ID {risk_id} already exists")


async def _ensure_controls_exist(s: AsyncSession, control_ids: list[uuid.UUID]) -> None:
    missing = await missing_controls(s, control_ids)
    if missing:
        raise HTTPException(404, f"Control(s) not found: {', '.join(str(m) for m in missing)}")


# =================== LIST ===================

@router.get("", response_model=DataResponse[list[RiskOut]], dependencies=[_read], summary="List risks")
async def list_risks(s: AsyncSession = Depends(get_session)):
    risks = (await s.execute(select(Risk).order_by(Risk.created_at.desc()))).scalars().all()
    links = await linked_control_map(s, [r.id for r in risks])
    return DataResponse[list[RiskOut]](data=[_risk_out(r, links[r.id]) for r in risks])


# =================== GET ===================

@router.get("/{risk_uuid}", response_model=DataResponse[RiskOut], dependencies=[_read], summary="Get a risk")
async def get_risk(risk_uuid: uuid.UUID, s: AsyncSession = Depends(get_session)):
    risk = await _get_risk(s, risk_uuid)
    return DataResponse[RiskOut](data=_risk_out(risk, await linked_controls(s, risk.id)))


# =================== CREATE ===================

@router.post("", response_model=DataResponse[RiskOut], status_code=201, dependencies=[_write],
             summary="Create a risk")
async def create_risk(body: RiskCreate, s: AsyncSession = Depends(get_session)):
    await _ensure_risk_id_free(s, body.risk_id)
    await _ensure_controls_exist(s, body.linked_controls)

    risk = Risk(**body.model_dump(exclude={"linked_controls"}))
    s.add(risk)
    await s.flush()

    if body.linked_controls:
        await replace_links(s, risk.id, body.linked_controls, created_by=current_user_id())

    await s.commit()
    await s.refresh(risk)
    logger.info("Risk %s created (%s)", risk.risk_id, risk.id)
    return DataResponse[RiskOut](data=_risk_out(risk, await linked_controls(s, risk.id)))


# =================== UPDATE ===================

@router.put("/{risk_uuid}", response_model=DataResponse[RiskOut], dependencies=[_write],
            summary="Update a risk")
async def update_risk(risk_uuid: uuid.UUID, body: RiskUpdate, s: AsyncSession = Depends(get_session)):
    risk = await _get_risk(s, risk_uuid)

    data = {
        k: v for k, v in body.model_dump(exclude_unset=True, exclude={"linked_controls"}).items()
        if not (k in _REQUIRED and v is None)
    }
    if "risk_id" in data and data["risk_id"] != risk.risk_id:
        await _ensure_risk_id_free(s, data["risk_id"])

    replace = "linked_controls" in body.model_fields_set
    new_links = body.linked_controls or []
    if replace:
        await _ensure_controls_exist(s, new_links)

    for k, v in data.items():
        setattr(risk, k, v)

    # Field merge and link replacement commit together
    if replace:
        await replace_links(s, risk.id, new_links, created_by=current_user_id())
        risk.updated_at = utcnow()

    await s.commit()
    await s.refresh(risk)
    return DataResponse[RiskOut](data=_risk_out(risk, await linked_controls(s, risk.id)))


# =================== DELETE ===================

@router.delete("/{risk_uuid}", status_code=204, dependencies=[_write], summary="Delete a risk and its links")
async def delete_risk(risk_uuid: uuid.UUID, s: AsyncSession = Depends(get_session)):
    risk = await _get_risk(s, risk_uuid)
    await delete_links(s, risk.id)
    await s.delete(risk)
    await s.commit()
    logger.info("Risk %s deleted", risk_uuid)
    return Response(status_code=204)
