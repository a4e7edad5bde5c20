"""Initial membership schema.

Revision ID: a0b1c2d3e4f5
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "a0b1c2d3e4f5"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    bind = op.get_bind()
    existing = set(sa.inspect(bind).get_table_names())

    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(320), nullable=False),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("name", sa.String(255), nullable=True),
            sa.Column("role", sa.String(64), nullable=False),
            sa.Column("level", sa.String(32), nullable=False),
            sa.Column("jurisdiction", sa.String(255), nullable=False),
            sa.Column("party_position", sa.String(255), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("email"),
        )

    if "audit_events" not in existing:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), nullable=True),
            sa.Column("actor_user_email", sa.String(320), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"], ondelete="SET NULL"),
            sa.UniqueConstraint("request_id", "id", name="uq_audit_request_id_id"),
        )

    if "members" not in existing:
        op.create_table(
            "members",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("membership_id", sa.String(32), nullable=False),
            sa.Column("full_name", sa.String(255), nullable=False),
            sa.Column("nrc_number", sa.String(16), nullable=False),
            sa.Column("date_of_birth", sa.Date(), nullable=False),
            sa.Column("gender", sa.String(16), nullable=True),
            sa.Column("phone", sa.String(32), nullable=False),
            sa.Column("email", sa.String(320), nullable=True),
            sa.Column("residential_address", sa.Text(), nullable=False),
            sa.Column("latitude", sa.Float(), nullable=True),
            sa.Column("longitude", sa.Float(), nullable=True),
            sa.Column("province", sa.String(128), nullable=False),
            sa.Column("district", sa.String(128), nullable=False),
            sa.Column("constituency", sa.String(128), nullable=False),
            sa.Column("ward", sa.String(128), nullable=False),
            sa.Column("branch", sa.String(128), nullable=False),
            sa.Column("section", sa.String(128), nullable=False),
            sa.Column("education", sa.String(255), nullable=True),
            sa.Column("occupation", sa.String(255), nullable=True),
            sa.Column("skills", JSONType, nullable=True),
            sa.Column("membership_level", sa.String(64), nullable=True),
            sa.Column("party_role", sa.String(255), nullable=True),
            sa.Column("party_commitment", sa.Text(), nullable=True),
            sa.Column("notification_preferences", JSONType, nullable=True),
            sa.Column("status", sa.String(64), nullable=False),
            sa.Column("registration_date", sa.DateTime(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
            sa.UniqueConstraint("membership_id"),
            sa.UniqueConstraint("nrc_number"),
        )
        op.create_index("idx_members_status", "members", ["status"])
        op.create_index("idx_members_province", "members", ["province"])
        op.create_index("idx_members_district", "members", ["district"])
        op.create_index("idx_members_registration_date", "members", ["registration_date"])

    if "disciplinary_cases" not in existing:
        op.create_table(
            "disciplinary_cases",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("case_number", sa.String(32), nullable=False),
            sa.Column("member_id", sa.Integer(), nullable=False),
            sa.Column("member_name", sa.String(255), nullable=False),
            sa.Column("violation_type", sa.String(128), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("severity", sa.String(16), nullable=False),
            sa.Column("status", sa.String(32), nullable=False),
            sa.Column("date_reported", sa.Date(), nullable=False),
            sa.Column("date_incident", sa.Date(), nullable=True),
            sa.Column("reporting_officer", sa.String(255), nullable=False),
            sa.Column("assigned_officer", sa.String(255), nullable=True),
            sa.Column("resolution", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="CASCADE"),
            sa.UniqueConstraint("case_number"),
        )
        op.create_index("idx_disciplinary_cases_status", "disciplinary_cases", ["status"])
        op.create_index("idx_disciplinary_cases_member", "disciplinary_cases", ["member_id"])

    if "disciplinary_case_actions" not in existing:
        op.create_table(
            "disciplinary_case_actions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("case_id", sa.Integer(), nullable=False),
            sa.Column("action", sa.String(255), nullable=False),
            sa.Column("action_date", sa.Date(), nullable=False),
            sa.Column("officer", sa.String(255), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["case_id"], ["disciplinary_cases.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_disciplinary_case_actions_case_id", "disciplinary_case_actions", ["case_id"])

    if "disciplinary_case_evidence" not in existing:
        op.create_table(
            "disciplinary_case_evidence",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("case_id", sa.Integer(), nullable=False),
            sa.Column("evidence_type", sa.String(32), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("uploaded_by", sa.String(255), nullable=False),
            sa.Column("upload_date", sa.Date(), nullable=False),
            sa.Column("storage_key", sa.Text(), nullable=True),
            sa.Column("original_filename", sa.Text(), nullable=True),
            sa.Column("content_type", sa.String(128), nullable=True),
            sa.Column("sha256", sa.String(64), nullable=True),
            sa.Column("size_bytes", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["case_id"], ["disciplinary_cases.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_disciplinary_case_evidence_case_id", "disciplinary_case_evidence", ["case_id"])

    if "disciplinary_case_notes" not in existing:
        op.create_table(
            "disciplinary_case_notes",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("case_id", sa.Integer(), nullable=False),
            sa.Column("note", sa.Text(), nullable=False),
            sa.Column("author", sa.String(255), nullable=False),
            sa.Column("note_date", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["case_id"], ["disciplinary_cases.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_disciplinary_case_notes_case_id", "disciplinary_case_notes", ["case_id"])

    if "events" not in existing:
        op.create_table(
            "events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("event_name", sa.String(255), nullable=False),
            sa.Column("event_type", sa.String(64), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("event_date", sa.Date(), nullable=False),
            sa.Column("event_time", sa.Time(), nullable=True),
            sa.Column("location", sa.String(255), nullable=False),
            sa.Column("latitude", sa.Float(), nullable=True),
            sa.Column("longitude", sa.Float(), nullable=True),
            sa.Column("province", sa.String(128), nullable=True),
            sa.Column("district", sa.String(128), nullable=True),
            sa.Column("organizer", sa.String(255), nullable=False),
            sa.Column("expected_attendees", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("actual_attendees", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("status", sa.String(32), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )
        op.create_index("idx_events_date", "events", ["event_date"])
        op.create_index("idx_events_status", "events", ["status"])

    if "event_rsvps" not in existing:
        op.create_table(
            "event_rsvps",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("event_id", sa.Integer(), nullable=False),
            sa.Column("member_id", sa.Integer(), nullable=False),
            sa.Column("response", sa.String(16), nullable=False),
            sa.Column("responded_at", sa.DateTime(), nullable=False),
            sa.Column("checked_in", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("checked_in_at", sa.DateTime(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["event_id"], ["events.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="CASCADE"),
            sa.UniqueConstraint("event_id", "member_id", name="uq_event_rsvps_event_member"),
        )
        op.create_index("ix_event_rsvps_event_id", "event_rsvps", ["event_id"])
        op.create_index("ix_event_rsvps_member_id", "event_rsvps", ["member_id"])

    if "communications" not in existing:
        op.create_table(
            "communications",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("type", sa.String(16), nullable=False),
            sa.Column("subject", sa.String(255), nullable=True),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("recipient_filter", JSONType, nullable=True),
            sa.Column("recipients_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("sent_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("failed_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("status", sa.String(16), nullable=False),
            sa.Column("sent_by", sa.String(255), nullable=True),
            sa.Column("sent_at", sa.DateTime(), nullable=True),
            sa.Column("created_by_user_id", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"], ondelete="SET NULL"),
        )

    if "communication_recipients" not in existing:
        op.create_table(
            "communication_recipients",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("communication_id", sa.Integer(), nullable=False),
            sa.Column("member_id", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(16), nullable=False),
            sa.Column("sent_at", sa.DateTime(), nullable=True),
            sa.Column("delivered_at", sa.DateTime(), nullable=True),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["communication_id"], ["communications.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="CASCADE"),
        )
        op.create_index(
            "ix_communication_recipients_communication_id", "communication_recipients", ["communication_id"]
        )
        op.create_index("ix_communication_recipients_member_id", "communication_recipients", ["member_id"])

    if "membership_cards" not in existing:
        op.create_table(
            "membership_cards",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("member_id", sa.Integer(), nullable=False),
            sa.Column("card_type", sa.String(32), nullable=False),
            sa.Column("issue_date", sa.Date(), nullable=False),
            sa.Column("expiry_date", sa.Date(), nullable=False),
            sa.Column("qr_code", sa.String(64), nullable=False),
            sa.Column("status", sa.String(16), nullable=False),
            sa.Column("renewal_reminder_sent", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("renewal_reminder_sent_at", sa.DateTime(), nullable=True),
            sa.Column("last_renewed_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="CASCADE"),
            sa.UniqueConstraint("qr_code"),
        )
        op.create_index("ix_membership_cards_member_id", "membership_cards", ["member_id"])
        op.create_index("idx_membership_cards_expiry", "membership_cards", ["expiry_date"])
        op.create_index("idx_membership_cards_status", "membership_cards", ["status"])


def downgrade() -> None:
    for table in (
        "membership_cards",
        "communication_recipients",
        "communications",
        "event_rsvps",
        "events",
        "disciplinary_case_notes",
        "disciplinary_case_evidence",
        "disciplinary_case_actions",
        "disciplinary_cases",
        "members",
        "audit_events",
        "users",
    ):
        op.drop_table(table)
