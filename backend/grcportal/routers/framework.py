"""
Compliance frameworks -- /api/v1/frameworks

CRUD for frameworks and their controls, bulk assignment of controls,
progress rollup and risk report.

Every mutation of a framework control recalculates the progress of each
framework it left or joined, in the same transaction as the mutation.
"""
from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import func, or_, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from grcportal.config import settings
from grcportal.database import get_session
from grcportal.models.framework import Framework, FrameworkControl, FrameworkStatus, FrameworkType
from grcportal.permissions import require_permission
from grcportal.schemas.common import DataResponse, PagedResponse, PageMeta
from grcportal.schemas.framework import (
    BulkAddResult,
    BulkControlIds,
    BulkRemoveResult,
    FrameworkControlCreate,
    FrameworkControlOut,
    FrameworkControlUpdate,
    FrameworkCreate,
    FrameworkDetailOut,
    FrameworkOut,
    FrameworkRiskReport,
    FrameworkUpdate,
)
from grcportal.services.framework_progress import (
    build_risk_report,
    recalculate_many,
    recalculate_progress,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/frameworks", tags=["Frameworks"])

_read = require_permission("frameworks:read")
_write = require_permission("frameworks:write")

SORTABLE_COLUMNS = {
    "name": Framework.name,
    "code": Framework.code,
    "type": Framework.type,
    "status": Framework.status,
    "completion_percentage": Framework.completion_percentage,
    "created_at": Framework.created_at,
    "updated_at": Framework.updated_at,
}

# Columns that may not be cleared through a partial update
_FRAMEWORK_REQUIRED = ("code", "name", "description", "type", "status")
_CONTROL_REQUIRED = (
    "requirement_id", "title", "description", "implementation_status", "priority",
    "requires_evidence", "evidence_count",
)


# ===================================================
# HELPERS
# ===================================================

async def _get_framework(s: AsyncSession, fw_id: uuid.UUID) -> Framework:
    fw = await s.get(Framework, fw_id)
    if not fw:
        raise HTTPException(404, f"Framework with ID {fw_id} not found")
    return fw


async def _get_control(s: AsyncSession, control_id: uuid.UUID) -> FrameworkControl:
    ctrl = await s.get(FrameworkControl, control_id)
    if not ctrl:
        raise HTTPException(404, f"Framework control with ID {control_id} not found")
    return ctrl


async def _ensure_code_free(s: AsyncSession, code: str) -> None:
    taken = (await s.execute(select(Framework.id).where(Framework.code == code))).scalar()
    if taken:
        raise HTTPException(409, f"Framework with code {code} already exists")


async def _framework_controls(
    s: AsyncSession, fw_id: uuid.UUID, domain: str | None = None,
) -> list[FrameworkControl]:
    q = select(FrameworkControl).where(FrameworkControl.framework_id == fw_id)
    if domain:
        q = q.where(FrameworkControl.domain == domain)
    q = q.order_by(FrameworkControl.requirement_id)
    return list((await s.execute(q)).scalars().all())


async def _detail_out(s: AsyncSession, fw: Framework) -> FrameworkDetailOut:
    out = FrameworkDetailOut.model_validate(fw)
    out.framework_controls = [
        FrameworkControlOut.model_validate(c) for c in await _framework_controls(s, fw.id)
    ]
    return out


def _drop_null_required(data: dict, required: tuple[str, ...]) -> dict:
    return {k: v for k, v in data.items() if not (k in required and v is None)}


def _list_contains(s: AsyncSession, attr: str, value: str):
    """Exact element match on a JSON list column of Framework."""
    if s.get_bind().dialect.name == "sqlite":
        inner = aliased(Framework)
        elements = func.json_each(getattr(inner, attr)).table_valued("value")
        return Framework.id.in_(
            select(inner.id).join(elements, true()).where(elements.c.value == value)
        )
    return func.json_contains(getattr(Framework, attr), func.json_quote(value)) == 1


# ===================================================
# FRAMEWORKS -- list / create
# ===================================================

@router.get("", response_model=PagedResponse[FrameworkOut], dependencies=[_read],
            summary="List frameworks with filters and pagination")
async def list_frameworks(
    search: str | None = Query(None, description="Substring of name, code or description"),
    type: FrameworkType | None = Query(None),
    status: FrameworkStatus | None = Query(None),
    owner_id: str | None = Query(None),
    tag: str | None = Query(None),
    industry: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: str = Query("name"),
    sort_order: str = Query("ASC", description="ASC or DESC"),
    s: AsyncSession = Depends(get_session),
):
    if sort_by not in SORTABLE_COLUMNS:
        raise HTTPException(400, f"Cannot sort by '{sort_by}'. Allowed: {', '.join(sorted(SORTABLE_COLUMNS))}")
    if sort_order.upper() not in ("ASC", "DESC"):
        raise HTTPException(400, "sort_order must be ASC or DESC")

    q = select(Framework)
    if search:
        pattern = f"%{search}%"
        q = q.where(or_(
            Framework.name.ilike(pattern),
            Framework.code.ilike(pattern),
            Framework.description.ilike(pattern),
        ))
    if type is not None:
        q = q.where(Framework.type == type)
    if status is not None:
        q = q.where(Framework.status == status)
    if owner_id:
        q = q.where(Framework.owner_id == owner_id)
    if tag:
        q = q.where(_list_contains(s, "tags", tag))
    if industry:
        q = q.where(_list_contains(s, "industries", industry))

    total = (await s.execute(select(func.count()).select_from(q.subquery()))).scalar() or 0

    column = SORTABLE_COLUMNS[sort_by]
    q = q.order_by(column.desc() if sort_order.upper() == "DESC" else column.asc(), Framework.id)
    q = q.offset((page - 1) * limit).limit(limit)
    frameworks = (await s.execute(q)).scalars().all()

    return PagedResponse[FrameworkOut](
        data=[FrameworkOut.model_validate(fw) for fw in frameworks],
        meta=PageMeta.build(page, limit, total),
    )


@router.post("", response_model=DataResponse[FrameworkOut], status_code=201, dependencies=[_write],
             summary="Create a framework")
async def create_framework(body: FrameworkCreate, s: AsyncSession = Depends(get_session)):
    await _ensure_code_free(s, body.code)
    fw = Framework(**body.model_dump())
    s.add(fw)
    await s.commit()
    await s.refresh(fw)
    logger.info("Framework %s created (%s)", fw.code, fw.id)
    return DataResponse[FrameworkOut](data=FrameworkOut.model_validate(fw))


# ===================================================
# FRAMEWORK CONTROLS -- must be before /{fw_id} to avoid path collision
# ===================================================

@router.get("/controls", response_model=DataResponse[list[FrameworkControlOut]], dependencies=[_read],
            summary="All framework controls, assigned or not")
async def list_all_controls(s: AsyncSession = Depends(get_session)):
    controls = (await s.execute(
        select(FrameworkControl).order_by(FrameworkControl.requirement_id, FrameworkControl.created_at)
    )).scalars().all()
    return DataResponse[list[FrameworkControlOut]](
        data=[FrameworkControlOut.model_validate(c) for c in controls],
    )


@router.post("/controls", response_model=DataResponse[FrameworkControlOut], status_code=201,
             dependencies=[_write], summary="Create a framework control")
async def create_control(body: FrameworkControlCreate, s: AsyncSession = Depends(get_session)):
    if body.framework_id is not None:
        await _get_framework(s, body.framework_id)

    data = body.model_dump(exclude_unset=True)
    ctrl = FrameworkControl(**_drop_null_required(data, _CONTROL_REQUIRED))
    s.add(ctrl)
    await s.flush()

    if ctrl.framework_id is not None:
        await recalculate_progress(s, ctrl.framework_id)

    await s.commit()
    await s.refresh(ctrl)
    return DataResponse[FrameworkControlOut](data=FrameworkControlOut.model_validate(ctrl))


@router.get("/controls/{control_id}", response_model=DataResponse[FrameworkControlOut],
            dependencies=[_read], summary="Get a framework control")
async def get_control(control_id: uuid.UUID, s: AsyncSession = Depends(get_session)):
    ctrl = await _get_control(s, control_id)
    return DataResponse[FrameworkControlOut](data=FrameworkControlOut.model_validate(ctrl))


@router.put("/controls/{control_id}", response_model=DataResponse[FrameworkControlOut],
            dependencies=[_write], summary="Update a framework control")
async def update_control(
    control_id: uuid.UUID, body: FrameworkControlUpdate, s: AsyncSession = Depends(get_session),
):
    ctrl = await _get_control(s, control_id)
    old_framework_id = ctrl.framework_id

    data = _drop_null_required(body.model_dump(exclude_unset=True), _CONTROL_REQUIRED)
    new_framework_id = data.get("framework_id", old_framework_id)
    if new_framework_id is not None and new_framework_id != old_framework_id:
        await _get_framework(s, new_framework_id)

    for k, v in data.items():
        setattr(ctrl, k, v)
    await s.flush()

    # Old framework first when the control moved, then its current one
    if old_framework_id is not None and old_framework_id != ctrl.framework_id:
        await recalculate_progress(s, old_framework_id)
    if ctrl.framework_id is not None:
        await recalculate_progress(s, ctrl.framework_id)

    await s.commit()
    await s.refresh(ctrl)
    return DataResponse[FrameworkControlOut](data=FrameworkControlOut.model_validate(ctrl))


@router.delete("/controls/{control_id}", status_code=204, dependencies=[_write],
               summary="Delete a framework control")
async def delete_control(control_id: uuid.UUID, s: AsyncSession = Depends(get_session)):
    ctrl = await _get_control(s, control_id)
    framework_id = ctrl.framework_id
    await s.delete(ctrl)
    await s.flush()

    if framework_id is not None:
        await recalculate_progress(s, framework_id)

    await s.commit()
    return Response(status_code=204)


# ===================================================
# FRAMEWORKS -- by code / by id
# ===================================================

@router.get("/code/{code}", response_model=DataResponse[FrameworkDetailOut], dependencies=[_read],
            summary="Get a framework by code")
async def get_framework_by_code(code: str, s: AsyncSession = Depends(get_session)):
    fw = (await s.execute(select(Framework).where(Framework.code == code))).scalar_one_or_none()
    if not fw:
        raise HTTPException(404, f"Framework with code {code} not found")
    return DataResponse[FrameworkDetailOut](data=await _detail_out(s, fw))


@router.get("/{fw_id}", response_model=DataResponse[FrameworkDetailOut], dependencies=[_read],
            summary="Get a framework with its controls")
async def get_framework(fw_id: uuid.UUID, s: AsyncSession = Depends(get_session)):
    fw = await _get_framework(s, fw_id)
    return DataResponse[FrameworkDetailOut](data=await _detail_out(s, fw))


@router.put("/{fw_id}", response_model=DataResponse[FrameworkOut], dependencies=[_write],
            summary="Update a framework")
async def update_framework(fw_id: uuid.UUID, body: FrameworkUpdate, s: AsyncSession = Depends(get_session)):
    fw = await _get_framework(s, fw_id)
    data = _drop_null_required(body.model_dump(exclude_unset=True), _FRAMEWORK_REQUIRED)

    if "code" in data and data["code"] != fw.code:
        await _ensure_code_free(s, data["code"])

    for k, v in data.items():
        setattr(fw, k, v)
    await s.commit()
    await s.refresh(fw)
    return DataResponse[FrameworkOut](data=FrameworkOut.model_validate(fw))


@router.delete("/{fw_id}", status_code=204, dependencies=[_write],
               summary="Delete a framework (its controls are unassigned, not deleted)")
async def delete_framework(fw_id: uuid.UUID, s: AsyncSession = Depends(get_session)):
    fw = await _get_framework(s, fw_id)
    code = fw.code
    unlinked = await s.execute(
        update(FrameworkControl)
        .where(FrameworkControl.framework_id == fw_id)
        .values(framework_id=None)
    )
    await s.delete(fw)
    await s.commit()
    logger.info("Framework %s deleted, %d control(s) unassigned", code, unlinked.rowcount)
    return Response(status_code=204)


# ===================================================
# FRAMEWORK -> CONTROLS
# ===================================================

@router.get("/{fw_id}/controls", response_model=DataResponse[list[FrameworkControlOut]],
            dependencies=[_read], summary="Controls of a framework (optional exact domain filter)")
async def list_framework_controls(
    fw_id: uuid.UUID,
    domain: str | None = Query(None, description="Exact domain match"),
    s: AsyncSession = Depends(get_session),
):
    await _get_framework(s, fw_id)
    controls = await _framework_controls(s, fw_id, domain)
    return DataResponse[list[FrameworkControlOut]](
        data=[FrameworkControlOut.model_validate(c) for c in controls],
    )


@router.post("/{fw_id}/controls/add-bulk", response_model=DataResponse[BulkAddResult],
             dependencies=[_write], summary="Assign existing controls to the framework")
async def bulk_add_controls(fw_id: uuid.UUID, body: BulkControlIds, s: AsyncSession = Depends(get_session)):
    await _get_framework(s, fw_id)
    controls: list[FrameworkControl] = []
    if body.control_ids:
        controls = list((await s.execute(
            select(FrameworkControl).where(FrameworkControl.id.in_(body.control_ids))
        )).scalars().all())

    # Controls already in this framework are left alone and not counted
    moved = [c for c in controls if c.framework_id != fw_id]
    previous = [c.framework_id for c in moved if c.framework_id is not None]
    for ctrl in moved:
        ctrl.framework_id = fw_id
    await s.flush()

    await recalculate_many(s, sorted(set(previous), key=str))
    await recalculate_progress(s, fw_id)
    await s.commit()
    return DataResponse[BulkAddResult](data=BulkAddResult(framework_id=fw_id, added_count=len(moved)))


@router.post("/{fw_id}/controls/remove-bulk", response_model=DataResponse[BulkRemoveResult],
             dependencies=[_write], summary="Unassign controls from the framework (not deleted)")
async def bulk_remove_controls(fw_id: uuid.UUID, body: BulkControlIds, s: AsyncSession = Depends(get_session)):
    await _get_framework(s, fw_id)
    controls: list[FrameworkControl] = []
    if body.control_ids:
        # Only controls that currently belong to this framework
        controls = list((await s.execute(
            select(FrameworkControl).where(
                FrameworkControl.id.in_(body.control_ids),
                FrameworkControl.framework_id == fw_id,
            )
        )).scalars().all())

    for ctrl in controls:
        ctrl.framework_id = None
    await s.flush()

    await recalculate_progress(s, fw_id)
    await s.commit()
    return DataResponse[BulkRemoveResult](data=BulkRemoveResult(framework_id=fw_id, removed_count=len(controls)))


# ===================================================
# PROGRESS & RISK REPORT
# ===================================================

@router.post("/{fw_id}/progress/update", response_model=DataResponse[FrameworkOut], dependencies=[_write],
             summary="Recalculate framework progress")
async def update_progress(fw_id: uuid.UUID, s: AsyncSession = Depends(get_session)):
    fw = await _get_framework(s, fw_id)
    await recalculate_progress(s, fw.id)
    await s.commit()
    await s.refresh(fw)
    return DataResponse[FrameworkOut](data=FrameworkOut.model_validate(fw))


@router.get("/{fw_id}/risk-report", response_model=DataResponse[FrameworkRiskReport], dependencies=[_read],
            summary="Risk distribution over the framework's controls")
async def get_risk_report(fw_id: uuid.UUID, s: AsyncSession = Depends(get_session)):
    fw = await _get_framework(s, fw_id)
    report = await build_risk_report(s, fw)
    await s.commit()
    return DataResponse[FrameworkRiskReport](data=FrameworkRiskReport.model_validate(report))
