"""
Framework progress and risk rollups.

Progress: total / implemented / partially implemented / not implemented
counts over the framework's controls, plus a weighted completion
percentage where a partially implemented control earns half credit:

    completion = round((implemented + 0.5 * partial) / total * 100, 2)

Callers run this inside the session of the mutation that changed the
controls, so the rollup commits (or rolls back) with it.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from grcportal.models.framework import (
    ControlRiskLevel,
    Framework,
    FrameworkControl,
    ImplementationStatus,
)

logger = logging.getLogger(__name__)

PARTIAL_CREDIT = Decimal("0.5")
_TWO_PLACES = Decimal("0.01")


def compute_completion(implemented: int, partial: int, total: int) -> Decimal:
    """Weighted completion percentage, 2 decimal places; 0 when there are no controls."""
    if total <= 0:
        return Decimal("0")
    score = (Decimal(implemented) + PARTIAL_CREDIT * partial) / Decimal(total) * 100
    return score.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


async def _status_counts(session: AsyncSession, framework_id: uuid.UUID) -> dict[ImplementationStatus, int]:
    rows = (await session.execute(
        select(FrameworkControl.implementation_status, func.count(FrameworkControl.id))
        .where(FrameworkControl.framework_id == framework_id)
        .group_by(FrameworkControl.implementation_status)
    )).all()
    return {status: count for status, count in rows}


async def recalculate_progress(session: AsyncSession, framework_id: uuid.UUID) -> Framework | None:
    """Refresh the rollup counters of one framework from its current controls."""
    framework = await session.get(Framework, framework_id)
    if framework is None:
        return None

    # Pending control changes must be visible to the count query
    await session.flush()
    counts = await _status_counts(session, framework_id)

    total = sum(counts.values())
    implemented = counts.get(ImplementationStatus.IMPLEMENTED, 0)
    partial = counts.get(ImplementationStatus.PARTIALLY_IMPLEMENTED, 0)

    framework.total_controls = total
    framework.implemented_controls = implemented
    framework.partially_implemented_controls = partial
    framework.not_implemented_controls = counts.get(ImplementationStatus.NOT_IMPLEMENTED, 0)
    framework.completion_percentage = compute_completion(implemented, partial, total)

    logger.info(
        "Framework %s progress: %d controls, %s%% complete",
        framework.code, total, framework.completion_percentage,
    )
    return framework


async def recalculate_many(session: AsyncSession, framework_ids: Iterable[uuid.UUID | None]) -> None:
    """Recalculate each distinct non-null framework once, in the given order."""
    for framework_id in dict.fromkeys(fid for fid in framework_ids if fid is not None):
        await recalculate_progress(session, framework_id)


# ═══════════════════ Risk report ═══════════════════

def recommendations(framework: Framework, distribution: dict[str, int]) -> list[str]:
    out: list[str] = []
    if distribution["critical"] > 0:
        out.append(f"Address {distribution['critical']} critical risk(s) immediately")
    if framework.completion_percentage < 50:
        out.append("Framework completion is below 50%. Prioritize control implementation.")
    if framework.not_implemented_controls > framework.total_controls * 0.3:
        out.append("More than 30% of controls are not implemented. Create an implementation plan.")
    if distribution["high"] + distribution["critical"] > 5:
        out.append("Multiple high/critical risks detected. Consider risk treatment plans.")
    return out


async def build_risk_report(session: AsyncSession, framework: Framework) -> dict:
    """Count the framework's controls by risk level and store the distribution."""
    controls = (await session.execute(
        select(FrameworkControl.risk_level, FrameworkControl.linked_risk_id)
        .where(FrameworkControl.framework_id == framework.id)
    )).all()

    distribution = {level.value: 0 for level in ControlRiskLevel}
    for risk_level, _ in controls:
        if risk_level is not None:
            distribution[risk_level.value] += 1
    with_risks = sum(1 for _, linked in controls if linked is not None)

    framework.critical_risks = distribution["critical"]
    framework.high_risks = distribution["high"]
    framework.medium_risks = distribution["medium"]
    framework.low_risks = distribution["low"]
    framework.last_assessment_date = date.today()

    return {
        "framework_id": framework.id,
        "framework_name": framework.name,
        "total_controls": framework.total_controls,
        "controls_with_risks": with_risks,
        "risk_distribution": distribution,
        "completion_percentage": float(framework.completion_percentage),
        "last_assessment_date": framework.last_assessment_date,
        "next_assessment_date": framework.next_assessment_date,
        "recommendations": recommendations(framework, distribution),
    }
