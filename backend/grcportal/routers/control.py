"""
Control catalog -- /api/v1/controls

Read-mostly master library of control definitions (SCF, CIS, NIST, custom).
Entries are seeded (scripts/seed_catalog.py); only in-place updates are
exposed here.
"""
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from grcportal.database import get_session
from grcportal.models.control import Control
from grcportal.permissions import require_permission
from grcportal.schemas.common import CountMeta, DataResponse, ListResponse
from grcportal.schemas.control import ControlOut, ControlStats, ControlUpdate

router = APIRouter(prefix="/api/v1/controls", tags=["Control catalog"])

_read = require_permission("controls:read")
_write = require_permission("controls:write")

# Columns that may not be cleared through a partial update
_REQUIRED = ("control_id", "source", "name", "domain")


async def _get_control(s: AsyncSession, control_uuid: uuid.UUID) -> Control:
    ctrl = await s.get(Control, control_uuid)
    if not ctrl:
        raise HTTPException(404, f"Control with UUID {control_uuid} not found")
    return ctrl


@router.get("", response_model=ListResponse[ControlOut], dependencies=[_read],
            summary="List catalog controls")
async def list_controls(
    domain: str | None = Query(None, description="Exact domain match"),
    source: str | None = Query(None, description="Exact source match (SCF, CIS, ...)"),
    search: str | None = Query(None, description="Case-insensitive substring of name or description"),
    s: AsyncSession = Depends(get_session),
):
    q = select(Control)
    # Free-text search replaces the exact filters
    if search:
        pattern = f"%{search}%"
        q = q.where(or_(Control.name.ilike(pattern), Control.description.ilike(pattern)))
    else:
        if domain:
            q = q.where(Control.domain == domain)
        if source:
            q = q.where(Control.source == source)
    q = q.order_by(Control.control_id)
    controls = (await s.execute(q)).scalars().all()
    return ListResponse[ControlOut](
        data=[ControlOut.model_validate(c) for c in controls],
        meta=CountMeta(total=len(controls)),
    )


# must be before /{control_uuid} to avoid path collision
@router.get("/stats/summary", response_model=DataResponse[ControlStats], dependencies=[_read],
            summary="Catalog statistics")
async def control_stats(s: AsyncSession = Depends(get_session)):
    total = (await s.execute(select(func.count(Control.id)))).scalar() or 0
    return DataResponse[ControlStats](data=ControlStats(total=total))


@router.get("/by-control-id/{control_id}", response_model=DataResponse[ControlOut], dependencies=[_read],
            summary="Get a control by its business identifier (e.g. AST-01)")
async def get_control_by_code(control_id: str, s: AsyncSession = Depends(get_session)):
    ctrl = (await s.execute(select(Control).where(Control.control_id == control_id))).scalar_one_or_none()
    if not ctrl:
        raise HTTPException(404, f"Control with ID {control_id} not found")
    return DataResponse[ControlOut](data=ControlOut.model_validate(ctrl))


@router.get("/{control_uuid}", response_model=DataResponse[ControlOut], dependencies=[_read],
            summary="Get a control")
async def get_control(control_uuid: uuid.UUID, s: AsyncSession = Depends(get_session)):
    ctrl = await _get_control(s, control_uuid)
    return DataResponse[ControlOut](data=ControlOut.model_validate(ctrl))


@router.put("/{control_uuid}", response_model=DataResponse[ControlOut], dependencies=[_write],
            summary="Update a control")
async def update_control(control_uuid: uuid.UUID, body: ControlUpdate, s: AsyncSession = Depends(get_session)):
    ctrl = await _get_control(s, control_uuid)
    data = {
        k: v for k, v in body.model_dump(exclude_unset=True).items()
        if not (k in _REQUIRED and v is None)
    }

    if "control_id" in data and data["control_id"] != ctrl.control_id:
        taken = (await s.execute(
            select(Control.id).where(Control.control_id == data["control_id"])
        )).scalar()
        if taken:
            raise HTTPException(409, f"Control with ID {data['control_id']} already exists")

    for k, v in data.items():
        setattr(ctrl, k, v)
    await s.commit()
    await s.refresh(ctrl)
    return DataResponse[ControlOut](data=ControlOut.model_validate(ctrl))
