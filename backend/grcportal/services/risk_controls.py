"""
Risk <-> control linkage through the risk_controls junction table.

The junction rows are the only storage; Risk.linked_controls is built
from them on every read. Writes replace the whole set.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from grcportal.models.control import Control
from grcportal.models.risk import RiskControl

logger = logging.getLogger(__name__)


def distinct_ids(control_ids: Iterable[uuid.UUID]) -> list[uuid.UUID]:
    return list(dict.fromkeys(control_ids))


async def missing_controls(session: AsyncSession, control_ids: Iterable[uuid.UUID]) -> list[uuid.UUID]:
    """Return the ids that do not exist in the control catalog."""
    wanted = distinct_ids(control_ids)
    if not wanted:
        return []
    found = set((await session.execute(
        select(Control.id).where(Control.id.in_(wanted))
    )).scalars().all())
    return [cid for cid in wanted if cid not in found]


async def replace_links(
    session: AsyncSession,
    risk_id: uuid.UUID,
    control_ids: Iterable[uuid.UUID],
    *,
    created_by: str | None = None,
) -> list[uuid.UUID]:
    """Delete every link of the risk, then insert one per distinct control id.

    Runs in the caller's transaction; nothing is committed here.
    """
    ids = distinct_ids(control_ids)
    await session.execute(delete(RiskControl).where(RiskControl.risk_id == risk_id))
    for cid in ids:
        session.add(RiskControl(risk_id=risk_id, control_id=cid, created_by=created_by))
    logger.info("Risk %s linked to %d control(s)", risk_id, len(ids))
    return ids


async def delete_links(session: AsyncSession, risk_id: uuid.UUID) -> None:
    await session.execute(delete(RiskControl).where(RiskControl.risk_id == risk_id))


async def linked_control_map(
    session: AsyncSession, risk_ids: Iterable[uuid.UUID],
) -> dict[uuid.UUID, list[uuid.UUID]]:
    """Map each risk id to its linked control ids, sorted for stable output."""
    ids = list(risk_ids)
    result: dict[uuid.UUID, list[uuid.UUID]] = {rid: [] for rid in ids}
    if not ids:
        return result
    rows = (await session.execute(
        select(RiskControl.risk_id, RiskControl.control_id)
        .where(RiskControl.risk_id.in_(ids))
    )).all()
    for risk_id, control_id in rows:
        result[risk_id].append(control_id)
    for links in result.values():
        links.sort(key=str)
    return result


async def linked_controls(session: AsyncSession, risk_id: uuid.UUID) -> list[uuid.UUID]:
    return (await linked_control_map(session, [risk_id]))[risk_id]
