import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, enum_values, utcnow


class RiskRating(str, enum.Enum):
    """Likelihood / impact scale."""
    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskTreatment(str, enum.Enum):
    ACCEPT = "Accept"
    MITIGATE = "Mitigate"
    TRANSFER = "Transfer"
    AVOID = "Avoid"


# One shared Enum object for the four rating columns
_RATING_ENUM = Enum(RiskRating, name="risk_rating_enum", values_callable=enum_values)


class Risk(Base):
    __tablename__ = "risks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    risk_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    # ── Assessment ──
    inherent_likelihood: Mapped[RiskRating | None] = mapped_column(_RATING_ENUM)
    inherent_impact: Mapped[RiskRating | None] = mapped_column(_RATING_ENUM)
    residual_likelihood: Mapped[RiskRating | None] = mapped_column(_RATING_ENUM)
    residual_impact: Mapped[RiskRating | None] = mapped_column(_RATING_ENUM)
    risk_level: Mapped[str | None] = mapped_column(String(50))

    # ── Treatment ──
    treatment: Mapped[RiskTreatment | None] = mapped_column(
        Enum(RiskTreatment, name="risk_treatment_enum", values_callable=enum_values),
    )
    threats: Mapped[str | None] = mapped_column(Text)

    # ── Ownership ──
    stakeholders: Mapped[list | None] = mapped_column(JSON)
    creator: Mapped[str | None] = mapped_column(String(200))
    business_unit: Mapped[str | None] = mapped_column(String(200))
    risk_owner: Mapped[str | None] = mapped_column(String(200))
    assets: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class RiskControl(Base):
    """Junction row: one risk mitigated by one catalog control.

    Sole source of truth for Risk.linked_controls, which is projected
    from these rows at read time.
    """
    __tablename__ = "risk_controls"
    __table_args__ = (
        UniqueConstraint("risk_id", "control_id", name="uq_risk_controls_risk_control"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    risk_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("risks.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    control_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("controls.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(200))
    notes: Mapped[str | None] = mapped_column(Text)
