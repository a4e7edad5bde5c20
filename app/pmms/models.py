from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.pmms.constants import LEVEL_NATIONAL, ROLE_MEMBER

# JSON everywhere, JSONB where the database supports it.
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class User(Base):
    """
    Administrative user. `jurisdiction` is interpreted through `level`:
    level=Provincial means jurisdiction is a province name, and so on.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(64), nullable=False, default=ROLE_MEMBER)
    level: Mapped[str] = mapped_column(String(32), nullable=False, default=LEVEL_NATIONAL)
    jurisdiction: Mapped[str] = mapped_column(String(255), nullable=False, default="National")
    party_position: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_session_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "level": self.level,
            "jurisdiction": self.jurisdiction,
            "party_position": self.party_position,
            "is_active": self.is_active,
        }


class AuditEvent(Base):
    """
    Append-only audit trail event.
    Keep this table intentionally generic; module tables refer to it by entity type/id.
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        UniqueConstraint("request_id", "id", name="uq_audit_request_id_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)

    actor_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actor_user_email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "member.status"
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "Member"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # small JSON string


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.pmms.modules.members.models import Member  # noqa: E402,F401
from app.pmms.modules.disciplinary.models import CaseAction, CaseEvidence, CaseNote, DisciplinaryCase  # noqa: E402,F401
from app.pmms.modules.events.models import Event, EventRsvp  # noqa: E402,F401
from app.pmms.modules.communications.models import Communication, CommunicationRecipient  # noqa: E402,F401
from app.pmms.modules.membership_cards.models import MembershipCard  # noqa: E402,F401
