"""Initial schema: frameworks, framework controls, control catalog, risks, risk-control links

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

Creates: frameworks, framework_controls, controls, risks, risk_controls

risk_controls is the only storage of a risk's linked controls; there is
no array column on risks.
"""
from alembic import op
import sqlalchemy as sa

revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

FRAMEWORK_TYPES = ("security", "privacy", "compliance", "risk", "custom")
FRAMEWORK_STATUSES = ("draft", "active", "in_progress", "completed", "archived")
IMPLEMENTATION_STATUSES = ("not_implemented", "partially_implemented", "implemented", "not_applicable")
GRADES = ("critical", "high", "medium", "low")
RISK_RATINGS = ("very_low", "low", "medium", "high", "critical")
TREATMENTS = ("Accept", "Mitigate", "Transfer", "Avoid")


def upgrade() -> None:
    # ── 1. frameworks ─────────────────────────────────────────────
    op.create_table(
        "frameworks",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("code", sa.String(100), nullable=False, unique=True),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("type", sa.Enum(*FRAMEWORK_TYPES, name="framework_type_enum"), nullable=False),
        sa.Column("status", sa.Enum(*FRAMEWORK_STATUSES, name="framework_status_enum"), nullable=False),
        sa.Column("version", sa.String(50), nullable=True),
        sa.Column("publisher", sa.String(200), nullable=True),
        sa.Column("effective_date", sa.Date, nullable=True),
        sa.Column("expiration_date", sa.Date, nullable=True),
        sa.Column("certification_body", sa.String(200), nullable=True),
        sa.Column("industries", sa.JSON, nullable=True),
        sa.Column("regions", sa.JSON, nullable=True),
        sa.Column("scope", sa.Text, nullable=True),
        sa.Column("objectives", sa.Text, nullable=True),
        sa.Column("owner_id", sa.String(100), nullable=True),
        sa.Column("tags", sa.JSON, nullable=True),
        sa.Column("custom_fields", sa.JSON, nullable=True),
        sa.Column("total_controls", sa.Integer, server_default="0", nullable=False),
        sa.Column("implemented_controls", sa.Integer, server_default="0", nullable=False),
        sa.Column("partially_implemented_controls", sa.Integer, server_default="0", nullable=False),
        sa.Column("not_implemented_controls", sa.Integer, server_default="0", nullable=False),
        sa.Column("completion_percentage", sa.Numeric(5, 2), server_default="0", nullable=False),
        sa.Column("critical_risks", sa.Integer, server_default="0", nullable=False),
        sa.Column("high_risks", sa.Integer, server_default="0", nullable=False),
        sa.Column("medium_risks", sa.Integer, server_default="0", nullable=False),
        sa.Column("low_risks", sa.Integer, server_default="0", nullable=False),
        sa.Column("last_assessment_date", sa.Date, nullable=True),
        sa.Column("next_assessment_date", sa.Date, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )

    # ── 2. framework_controls ─────────────────────────────────────
    op.create_table(
        "framework_controls",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("framework_id", sa.Uuid,
                  sa.ForeignKey("frameworks.id", ondelete="SET NULL"), nullable=True),
        sa.Column("control_code", sa.String(100), nullable=True),
        sa.Column("external_control_id", sa.Uuid, nullable=True),
        sa.Column("requirement_id", sa.String(100), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("rationale", sa.Text, nullable=True),
        sa.Column("guidance", sa.Text, nullable=True),
        sa.Column("implementation_status",
                  sa.Enum(*IMPLEMENTATION_STATUSES, name="implementation_status_enum"), nullable=False),
        sa.Column("priority", sa.Enum(*GRADES, name="control_priority_enum"), nullable=False),
        sa.Column("category", sa.String(200), nullable=True),
        sa.Column("domain", sa.String(200), nullable=True),
        sa.Column("control_families", sa.JSON, nullable=True),
        sa.Column("mapped_controls", sa.JSON, nullable=True),
        sa.Column("owner_id", sa.String(100), nullable=True),
        sa.Column("owner_email", sa.String(320), nullable=True),
        sa.Column("implementation_date", sa.Date, nullable=True),
        sa.Column("last_review_date", sa.Date, nullable=True),
        sa.Column("next_review_date", sa.Date, nullable=True),
        sa.Column("implementation_notes", sa.Text, nullable=True),
        sa.Column("testing_procedure", sa.Text, nullable=True),
        sa.Column("requires_evidence", sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column("evidence_count", sa.Integer, server_default="0", nullable=False),
        sa.Column("evidence_ids", sa.JSON, nullable=True),
        sa.Column("linked_risk_id", sa.Uuid, nullable=True),
        sa.Column("risk_level", sa.Enum(*GRADES, name="control_risk_level_enum"), nullable=True),
        sa.Column("tags", sa.JSON, nullable=True),
        sa.Column("custom_fields", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_framework_controls_framework_id", "framework_controls", ["framework_id"])

    # ── 3. controls (catalog) ─────────────────────────────────────
    op.create_table(
        "controls",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("control_id", sa.String(100), nullable=False, unique=True),
        sa.Column("source", sa.String(50), server_default="SCF", nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("domain", sa.String(200), nullable=False),
        sa.Column("procedure", sa.Text, nullable=True),
        sa.Column("maturity", sa.Text, nullable=True),
        sa.Column("nist80053", sa.Text, nullable=True),
        sa.Column("nist_csf", sa.Text, nullable=True),
        sa.Column("iso27k", sa.Text, nullable=True),
        sa.Column("pci4", sa.Text, nullable=True),
        sa.Column("mitre", sa.Text, nullable=True),
        sa.Column("evidence", sa.Text, nullable=True),
        sa.Column("policy", sa.Text, nullable=True),
    )

    # ── 4. risks ──────────────────────────────────────────────────
    rating = sa.Enum(*RISK_RATINGS, name="risk_rating_enum")
    op.create_table(
        "risks",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("risk_id", sa.String(100), nullable=False, unique=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("inherent_likelihood", rating, nullable=True),
        sa.Column("inherent_impact", rating, nullable=True),
        sa.Column("residual_likelihood", rating, nullable=True),
        sa.Column("residual_impact", rating, nullable=True),
        sa.Column("risk_level", sa.String(50), nullable=True),
        sa.Column("treatment", sa.Enum(*TREATMENTS, name="risk_treatment_enum"), nullable=True),
        sa.Column("threats", sa.Text, nullable=True),
        sa.Column("stakeholders", sa.JSON, nullable=True),
        sa.Column("creator", sa.String(200), nullable=True),
        sa.Column("business_unit", sa.String(200), nullable=True),
        sa.Column("risk_owner", sa.String(200), nullable=True),
        sa.Column("assets", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )

    # ── 5. risk_controls (junction) ───────────────────────────────
    op.create_table(
        "risk_controls",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("risk_id", sa.Uuid, sa.ForeignKey("risks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("control_id", sa.Uuid, sa.ForeignKey("controls.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("created_by", sa.String(200), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.UniqueConstraint("risk_id", "control_id", name="uq_risk_controls_risk_control"),
    )
    op.create_index("ix_risk_controls_risk_id", "risk_controls", ["risk_id"])
    op.create_index("ix_risk_controls_control_id", "risk_controls", ["control_id"])


def downgrade() -> None:
    op.drop_index("ix_risk_controls_control_id", table_name="risk_controls")
    op.drop_index("ix_risk_controls_risk_id", table_name="risk_controls")
    op.drop_table("risk_controls")
    op.drop_table("risks")
    op.drop_table("controls")
    op.drop_index("ix_framework_controls_framework_id", table_name="framework_controls")
    op.drop_table("framework_controls")
    op.drop_table("frameworks")