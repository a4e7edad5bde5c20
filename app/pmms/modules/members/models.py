from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.pmms.constants import INITIAL_STATUS
from app.pmms.models import Base, JSONType

if TYPE_CHECKING:
    from app.pmms.modules.communications.models import CommunicationRecipient
    from app.pmms.modules.disciplinary.models import DisciplinaryCase
    from app.pmms.modules.events.models import EventRsvp
    from app.pmms.modules.membership_cards.models import MembershipCard


def _default_notification_preferences() -> dict:
    return {"sms": True, "email": True, "push": True}


class Member(Base):
    __tablename__ = "members"
    __table_args__ = (
        Index("idx_members_status", "status"),
        Index("idx_members_province", "province"),
        Index("idx_members_district", "district"),
        Index("idx_members_registration_date", "registration_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    membership_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)

    # Identity
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    nrc_number: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    gender: Mapped[str | None] = mapped_column(String(16), nullable=True, default="Male")

    # Contact
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    residential_address: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Jurisdiction (all six levels required)
    province: Mapped[str] = mapped_column(String(128), nullable=False)
    district: Mapped[str] = mapped_column(String(128), nullable=False)
    constituency: Mapped[str] = mapped_column(String(128), nullable=False)
    ward: Mapped[str] = mapped_column(String(128), nullable=False)
    branch: Mapped[str] = mapped_column(String(128), nullable=False)
    section: Mapped[str] = mapped_column(String(128), nullable=False)

    # Profile
    education: Mapped[str | None] = mapped_column(String(255), nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(255), nullable=True)
    skills: Mapped[list | None] = mapped_column(JSONType, nullable=True, default=list)
    membership_level: Mapped[str | None] = mapped_column(String(64), nullable=True, default="General")
    party_role: Mapped[str | None] = mapped_column(String(255), nullable=True)
    party_commitment: Mapped[str | None] = mapped_column(Text, nullable=True)
    notification_preferences: Mapped[dict | None] = mapped_column(
        JSONType, nullable=True, default=_default_notification_preferences
    )

    # Lifecycle
    status: Mapped[str] = mapped_column(String(64), nullable=False, default=INITIAL_STATUS)
    registration_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    # Optimistic concurrency: a stale UPDATE fails instead of silently overwriting.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    disciplinary_cases: Mapped[list["DisciplinaryCase"]] = relationship(
        "DisciplinaryCase",
        back_populates="member",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    cards: Mapped[list["MembershipCard"]] = relationship(
        "MembershipCard",
        back_populates="member",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    rsvps: Mapped[list["EventRsvp"]] = relationship(
        "EventRsvp",
        back_populates="member",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    communication_receipts: Mapped[list["CommunicationRecipient"]] = relationship(
        "CommunicationRecipient",
        back_populates="member",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_pending(self) -> bool:
        return "Pending" in (self.status or "")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "membership_id": self.membership_id,
            "full_name": self.full_name,
            "nrc_number": self.nrc_number,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "gender": self.gender,
            "phone": self.phone,
            "email": self.email,
            "residential_address": self.residential_address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "jurisdiction": {
                "province": self.province,
                "district": self.district,
                "constituency": self.constituency,
                "ward": self.ward,
                "branch": self.branch,
                "section": self.section,
            },
            "education": self.education,
            "occupation": self.occupation,
            "skills": list(self.skills or []),
            "membership_level": self.membership_level,
            "party_role": self.party_role,
            "party_commitment": self.party_commitment,
            "status": self.status,
            "registration_date": self.registration_date.isoformat() if self.registration_date else None,
            "version": self.version,
        }
