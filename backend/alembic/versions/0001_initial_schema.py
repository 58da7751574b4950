"""Create simulator users, catalog, prescriptions, protocols and audit tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

_user_role = sa.Enum("ADMIN", "INSTRUCTOR", "STUDENT", name="userrole")
_start_after = sa.Enum("AFTER_FIRST_ADMIN", "IMMEDIATE", name="startafter")
_administration_status = sa.Enum(
    "COLLECTED", "ADMINISTERED", "WARNING", "ERROR", name="administrationstatus"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("username", sa.String(length=120), nullable=False, unique=True),
        sa.Column("hashed_pin", sa.String(length=255), nullable=False),
        sa.Column("role", _user_role, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "patients",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("mrn", sa.String(length=64), nullable=False, unique=True),
        sa.Column("bed", sa.String(length=32), nullable=True),
        sa.Column("allergies", sa.String(length=1024), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "medicines",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("default_dose", sa.String(length=120), nullable=False),
        sa.Column("default_route", sa.String(length=32), nullable=False),
        sa.Column("default_frequency", sa.String(length=120), nullable=False),
        sa.Column("is_narcotic", sa.Boolean(), nullable=False),
        sa.Column("is_prn", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "prescriptions",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "patient_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "medicine_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("medicines.id"),
            nullable=False,
        ),
        sa.Column("dosage", sa.String(length=120), nullable=False),
        sa.Column("periodicity", sa.String(length=120), nullable=False),
        sa.Column("duration", sa.String(length=120), nullable=True),
        sa.Column("route", sa.String(length=32), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_doses", sa.Integer(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_prescriptions_patient_id", "prescriptions", ["patient_id"])

    op.create_table(
        "medication_links",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "trigger_medicine_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("medicines.id"),
            nullable=False,
        ),
        sa.Column(
            "follow_medicine_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("medicines.id"),
            nullable=False,
        ),
        sa.Column("follow_frequency", sa.String(length=120), nullable=False),
        sa.Column("follow_duration_hours", sa.Integer(), nullable=False),
        sa.Column("delay_minutes", sa.Integer(), nullable=False),
        sa.Column("start_after", _start_after, nullable=False),
        sa.Column("required_prompt", sa.Boolean(), nullable=False),
        sa.Column("default_dose_override", sa.String(length=120), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_medication_links_trigger_medicine_id",
        "medication_links",
        ["trigger_medicine_id"],
    )

    op.create_table(
        "protocol_instances",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "patient_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "link_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("medication_links.id"),
            nullable=False,
        ),
        sa.Column(
            "trigger_prescription_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("prescriptions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "follow_prescription_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("prescriptions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "link_id", "trigger_prescription_id", name="uq_protocol_link_trigger"
        ),
    )
    op.create_index(
        "ix_protocol_instances_patient_id", "protocol_instances", ["patient_id"]
    )
    op.create_index("ix_protocol_instances_link_id", "protocol_instances", ["link_id"])

    op.create_table(
        "administrations",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "patient_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "medicine_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("medicines.id"),
            nullable=False,
        ),
        sa.Column(
            "prescription_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("prescriptions.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("status", _administration_status, nullable=False),
        sa.Column(
            "administered_by",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("administered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("message", sa.String(length=1024), nullable=False),
    )
    op.create_index(
        "ix_administrations_patient_id", "administrations", ["patient_id"]
    )
    op.create_index(
        "ix_administrations_prescription_id", "administrations", ["prescription_id"]
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("event_type", sa.String(length=120), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=True),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("description", sa.String(length=1024), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_events_event_type", "audit_events", ["event_type"])
    op.create_index("ix_audit_events_entity_id", "audit_events", ["entity_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_entity_id", table_name="audit_events")
    op.drop_index("ix_audit_events_event_type", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_administrations_prescription_id", table_name="administrations")
    op.drop_index("ix_administrations_patient_id", table_name="administrations")
    op.drop_table("administrations")
    op.drop_index("ix_protocol_instances_link_id", table_name="protocol_instances")
    op.drop_index("ix_protocol_instances_patient_id", table_name="protocol_instances")
    op.drop_table("protocol_instances")
    op.drop_index(
        "ix_medication_links_trigger_medicine_id", table_name="medication_links"
    )
    op.drop_table("medication_links")
    op.drop_index("ix_prescriptions_patient_id", table_name="prescriptions")
    op.drop_table("prescriptions")
    op.drop_table("medicines")
    op.drop_table("patients")
    op.drop_table("users")
    _administration_status.drop(op.get_bind(), checkfirst=True)
    _start_after.drop(op.get_bind(), checkfirst=True)
    _user_role.drop(op.get_bind(), checkfirst=True)
