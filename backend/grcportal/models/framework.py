"""
Compliance frameworks and their controls.

Tables: frameworks, framework_controls

A framework owns zero or more framework controls through
framework_controls.framework_id (nullable: controls may be unassigned).
The rollup counters on frameworks are derived data, maintained by
grcportal.services.framework_progress.
"""
import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, enum_values, utcnow


class FrameworkType(str, enum.Enum):
    SECURITY = "security"
    PRIVACY = "privacy"
    COMPLIANCE = "compliance"
    RISK = "risk"
    CUSTOM = "custom"


class FrameworkStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ImplementationStatus(str, enum.Enum):
    NOT_IMPLEMENTED = "not_implemented"
    PARTIALLY_IMPLEMENTED = "partially_implemented"
    IMPLEMENTED = "implemented"
    NOT_APPLICABLE = "not_applicable"


class ControlPriority(str, enum.Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Risk level carried on a framework control uses the same four grades
ControlRiskLevel = ControlPriority


class Framework(Base):
    __tablename__ = "frameworks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[FrameworkType] = mapped_column(
        Enum(FrameworkType, name="framework_type_enum", values_callable=enum_values),
        default=FrameworkType.COMPLIANCE, nullable=False,
    )
    status: Mapped[FrameworkStatus] = mapped_column(
        Enum(FrameworkStatus, name="framework_status_enum", values_callable=enum_values),
        default=FrameworkStatus.DRAFT, nullable=False,
    )

    version: Mapped[str | None] = mapped_column(String(50))
    publisher: Mapped[str | None] = mapped_column(String(200))
    effective_date: Mapped[date | None] = mapped_column(Date)
    expiration_date: Mapped[date | None] = mapped_column(Date)
    certification_body: Mapped[str | None] = mapped_column(String(200))
    industries: Mapped[list | None] = mapped_column(JSON)
    regions: Mapped[list | None] = mapped_column(JSON)
    scope: Mapped[str | None] = mapped_column(Text)
    objectives: Mapped[str | None] = mapped_column(Text)
    owner_id: Mapped[str | None] = mapped_column(String(100))
    tags: Mapped[list | None] = mapped_column(JSON)
    custom_fields: Mapped[dict | None] = mapped_column(JSON)

    # ── Progress rollup (derived from framework_controls) ──
    total_controls: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    implemented_controls: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    partially_implemented_controls: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    not_implemented_controls: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completion_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"), nullable=False)

    # ── Risk distribution (refreshed by the risk report) ──
    critical_risks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    high_risks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    medium_risks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    low_risks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_assessment_date: Mapped[date | None] = mapped_column(Date)
    next_assessment_date: Mapped[date | None] = mapped_column(Date)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class FrameworkControl(Base):
    """A control instance, optionally scoped to one framework."""
    __tablename__ = "framework_controls"
    __table_args__ = (
        Index("ix_framework_controls_framework_id", "framework_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    framework_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("frameworks.id", ondelete="SET NULL"), nullable=True,
    )

    # Reference into the control catalog (by business code or id)
    control_code: Mapped[str | None] = mapped_column(String(100))
    external_control_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    requirement_id: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    rationale: Mapped[str | None] = mapped_column(Text)
    guidance: Mapped[str | None] = mapped_column(Text)

    implementation_status: Mapped[ImplementationStatus] = mapped_column(
        Enum(ImplementationStatus, name="implementation_status_enum", values_callable=enum_values),
        default=ImplementationStatus.NOT_IMPLEMENTED, nullable=False,
    )
    priority: Mapped[ControlPriority] = mapped_column(
        Enum(ControlPriority, name="control_priority_enum", values_callable=enum_values),
        default=ControlPriority.MEDIUM, nullable=False,
    )
    category: Mapped[str | None] = mapped_column(String(200))
    domain: Mapped[str | None] = mapped_column(String(200))
    control_families: Mapped[list | None] = mapped_column(JSON)
    mapped_controls: Mapped[list | None] = mapped_column(JSON)

    owner_id: Mapped[str | None] = mapped_column(String(100))
    owner_email: Mapped[str | None] = mapped_column(String(320))
    implementation_date: Mapped[date | None] = mapped_column(Date)
    last_review_date: Mapped[date | None] = mapped_column(Date)
    next_review_date: Mapped[date | None] = mapped_column(Date)
    implementation_notes: Mapped[str | None] = mapped_column(Text)
    testing_procedure: Mapped[str | None] = mapped_column(Text)

    requires_evidence: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    evidence_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    evidence_ids: Mapped[list | None] = mapped_column(JSON)

    linked_risk_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    risk_level: Mapped[ControlRiskLevel | None] = mapped_column(
        Enum(ControlRiskLevel, name="control_risk_level_enum", values_callable=enum_values),
    )

    tags: Mapped[list | None] = mapped_column(JSON)
    custom_fields: Mapped[dict | None] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
