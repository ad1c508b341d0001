"""
Control catalog: master library of reusable control definitions
(SCF, CIS, NIST, custom, ...). Implementation state lives on
framework_controls; this table only describes the control.
"""
import uuid

from sqlalchemy import String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Control(Base):
    __tablename__ = "controls"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    control_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    source: Mapped[str] = mapped_column(String(50), default="SCF", nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    domain: Mapped[str] = mapped_column(String(200), nullable=False)
    procedure: Mapped[str | None] = mapped_column(Text)
    maturity: Mapped[str | None] = mapped_column(Text)

    # ── Cross-mapping to external standards ──
    nist_800_53: Mapped[str | None] = mapped_column("nist80053", Text)
    nist_csf: Mapped[str | None] = mapped_column(Text)
    iso_27k: Mapped[str | None] = mapped_column("iso27k", Text)
    pci_4: Mapped[str | None] = mapped_column("pci4", Text)
    mitre: Mapped[str | None] = mapped_column(Text)

    evidence: Mapped[str | None] = mapped_column(Text)
    policy: Mapped[str | None] = mapped_column(Text)
