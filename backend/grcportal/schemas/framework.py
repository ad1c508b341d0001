"""Pydantic schemas for frameworks and framework controls."""
import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from grcportal.models.framework import (
    ControlPriority,
    ControlRiskLevel,
    FrameworkStatus,
    FrameworkType,
    ImplementationStatus,
)


# ═══════════════════ Framework Controls ═══════════════════

class FrameworkControlOut(BaseModel):
    id: uuid.UUID
    framework_id: uuid.UUID | None = None
    control_code: str | None = None
    external_control_id: uuid.UUID | None = None
    requirement_id: str
    title: str
    description: str
    rationale: str | None = None
    guidance: str | None = None
    implementation_status: ImplementationStatus
    priority: ControlPriority
    category: str | None = None
    domain: str | None = None
    control_families: list[str] | None = None
    mapped_controls: list[str] | None = None
    owner_id: str | None = None
    owner_email: str | None = None
    implementation_date: date | None = None
    last_review_date: date | None = None
    next_review_date: date | None = None
    implementation_notes: str | None = None
    testing_procedure: str | None = None
    requires_evidence: bool = False
    evidence_count: int = 0
    evidence_ids: list[str] | None = None
    linked_risk_id: uuid.UUID | None = None
    risk_level: ControlRiskLevel | None = None
    tags: list[str] | None = None
    custom_fields: dict | None = None
    created_at: datetime
    updated_at: datetime
    model_config = {"from_attributes": True}


class _FrameworkControlFields(BaseModel):
    framework_id: uuid.UUID | None = None
    control_code: str | None = Field(None, max_length=100)
    external_control_id: uuid.UUID | None = None
    rationale: str | None = None
    guidance: str | None = None
    category: str | None = Field(None, max_length=200)
    domain: str | None = Field(None, max_length=200)
    control_families: list[str] | None = None
    mapped_controls: list[str] | None = None
    owner_id: str | None = Field(None, max_length=100)
    owner_email: str | None = Field(None, max_length=320)
    implementation_date: date | None = None
    last_review_date: date | None = None
    next_review_date: date | None = None
    implementation_notes: str | None = None
    testing_procedure: str | None = None
    requires_evidence: bool | None = None
    evidence_count: int | None = Field(None, ge=0)
    evidence_ids: list[str] | None = None
    linked_risk_id: uuid.UUID | None = None
    risk_level: ControlRiskLevel | None = None
    tags: list[str] | None = None
    custom_fields: dict | None = None

    model_config = {"extra": "forbid"}

    @field_validator("framework_id", "external_control_id", "linked_risk_id", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        # The UI posts "" for an unselected framework
        if isinstance(v, str) and not v.strip():
            return None
        return v


class FrameworkControlCreate(_FrameworkControlFields):
    requirement_id: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=500)
    description: str
    implementation_status: ImplementationStatus = ImplementationStatus.NOT_IMPLEMENTED
    priority: ControlPriority = ControlPriority.MEDIUM


class FrameworkControlUpdate(_FrameworkControlFields):
    requirement_id: str | None = Field(None, min_length=1, max_length=100)
    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    implementation_status: ImplementationStatus | None = None
    priority: ControlPriority | None = None


class BulkControlIds(BaseModel):
    control_ids: list[uuid.UUID] = []
    model_config = {"extra": "forbid"}


class BulkAddResult(BaseModel):
    framework_id: uuid.UUID
    added_count: int


class BulkRemoveResult(BaseModel):
    framework_id: uuid.UUID
    removed_count: int


# ═══════════════════ Frameworks ═══════════════════

class FrameworkOut(BaseModel):
    id: uuid.UUID
    code: str
    name: str
    description: str
    type: FrameworkType
    status: FrameworkStatus
    version: str | None = None
    publisher: str | None = None
    effective_date: date | None = None
    expiration_date: date | None = None
    certification_body: str | None = None
    industries: list[str] | None = None
    regions: list[str] | None = None
    scope: str | None = None
    objectives: str | None = None
    owner_id: str | None = None
    tags: list[str] | None = None
    custom_fields: dict | None = None

    total_controls: int = 0
    implemented_controls: int = 0
    partially_implemented_controls: int = 0
    not_implemented_controls: int = 0
    completion_percentage: float = 0

    critical_risks: int = 0
    high_risks: int = 0
    medium_risks: int = 0
    low_risks: int = 0
    last_assessment_date: date | None = None
    next_assessment_date: date | None = None

    created_at: datetime
    updated_at: datetime
    model_config = {"from_attributes": True}


class FrameworkDetailOut(FrameworkOut):
    framework_controls: list[FrameworkControlOut] = []


class _FrameworkFields(BaseModel):
    version: str | None = Field(None, max_length=50)
    publisher: str | None = Field(None, max_length=200)
    effective_date: date | None = None
    expiration_date: date | None = None
    certification_body: str | None = Field(None, max_length=200)
    industries: list[str] | None = None
    regions: list[str] | None = None
    scope: str | None = None
    objectives: str | None = None
    owner_id: str | None = Field(None, max_length=100)
    tags: list[str] | None = None
    custom_fields: dict | None = None
    next_assessment_date: date | None = None

    model_config = {"extra": "forbid"}


class FrameworkCreate(_FrameworkFields):
    code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=500)
    description: str
    type: FrameworkType
    status: FrameworkStatus = FrameworkStatus.DRAFT


class FrameworkUpdate(_FrameworkFields):
    code: str | None = Field(None, min_length=1, max_length=100)
    name: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    type: FrameworkType | None = None
    status: FrameworkStatus | None = None


# ═══════════════════ Risk report ═══════════════════

class RiskDistribution(BaseModel):
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class FrameworkRiskReport(BaseModel):
    framework_id: uuid.UUID
    framework_name: str
    total_controls: int
    controls_with_risks: int
    risk_distribution: RiskDistribution
    completion_percentage: float
    last_assessment_date: date | None = None
    next_assessment_date: date | None = None
    recommendations: list[str] = []
