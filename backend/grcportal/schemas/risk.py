import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from grcportal.models.risk import RiskRating, RiskTreatment


class RiskOut(BaseModel):
    id: uuid.UUID
    risk_id: str
    title: str
    description: str | None = None

    inherent_likelihood: RiskRating | None = None
    inherent_impact: RiskRating | None = None
    residual_likelihood: RiskRating | None = None
    residual_impact: RiskRating | None = None
    risk_level: str | None = None

    treatment: RiskTreatment | None = None
    threats: str | None = None

    stakeholders: list[str] | None = None
    creator: str | None = None
    business_unit: str | None = None
    risk_owner: str | None = None
    assets: str | None = None

    # Projected from risk_controls, not stored on the risk row
    linked_controls: list[uuid.UUID] = []

    created_at: datetime
    updated_at: datetime


class _RiskFields(BaseModel):
    description: str | None = None
    inherent_likelihood: RiskRating | None = None
    inherent_impact: RiskRating | None = None
    residual_likelihood: RiskRating | None = None
    residual_impact: RiskRating | None = None
    risk_level: str | None = Field(None, max_length=50)
    treatment: RiskTreatment | None = None
    threats: str | None = None
    stakeholders: list[str] | None = None
    creator: str | None = Field(None, max_length=200)
    business_unit: str | None = Field(None, max_length=200)
    risk_owner: str | None = Field(None, max_length=200)
    assets: str | None = None

    model_config = {"extra": "forbid"}


class RiskCreate(_RiskFields):
    risk_id: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=500)
    linked_controls: list[uuid.UUID] = []


class RiskUpdate(_RiskFields):
    risk_id: str | None = Field(None, min_length=1, max_length=100)
    title: str | None = Field(None, min_length=1, max_length=500)
    # Presence of the key (even []) replaces the full link set; absence keeps it
    linked_controls: list[uuid.UUID] | None = None

    @field_validator("linked_controls")
    @classmethod
    def _no_null_links(cls, v):
        if v is None:
            raise ValueError("linked_controls cannot be null; send [] to remove all links")
        return v
