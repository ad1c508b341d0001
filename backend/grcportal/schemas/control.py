import uuid

from pydantic import BaseModel, Field


class ControlOut(BaseModel):
    id: uuid.UUID
    control_id: str
    source: str
    name: str
    description: str | None = None
    domain: str
    procedure: str | None = None
    maturity: str | None = None
    nist_800_53: str | None = None
    nist_csf: str | None = None
    iso_27k: str | None = None
    pci_4: str | None = None
    mitre: str | None = None
    evidence: str | None = None
    policy: str | None = None
    model_config = {"from_attributes": True}


class ControlUpdate(BaseModel):
    control_id: str | None = Field(None, min_length=1, max_length=100)
    source: str | None = Field(None, min_length=1, max_length=50)
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    domain: str | None = Field(None, min_length=1, max_length=200)
    procedure: str | None = None
    maturity: str | None = None
    nist_800_53: str | None = None
    nist_csf: str | None = None
    iso_27k: str | None = None
    pci_4: str | None = None
    mitre: str | None = None
    evidence: str | None = None
    policy: str | None = None

    model_config = {"extra": "forbid"}


class ControlStats(BaseModel):
    total: int
