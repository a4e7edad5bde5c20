from __future__ import annotations

from datetime import date, datetime, time
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.pmms.models import Base

if TYPE_CHECKING:
    from app.pmms.modules.members.models import Member


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        Index("idx_events_date", "event_date"),
        Index("idx_events_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_name: Mapped[str] = mapped_column(String(255), nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    event_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    province: Mapped[str | None] = mapped_column(String(128), nullable=True)
    district: Mapped[str | None] = mapped_column(String(128), nullable=True)
    organizer: Mapped[str] = mapped_column(String(255), nullable=False)
    expected_attendees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    actual_attendees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="Planned")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    rsvps: Mapped[list["EventRsvp"]] = relationship(
        "EventRsvp", back_populates="event", cascade="all, delete-orphan", passive_deletes=True
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_name": self.event_name,
            "event_type": self.event_type,
            "description": self.description,
            "event_date": self.event_date.isoformat() if self.event_date else None,
            "event_time": self.event_time.strftime("%H:%M") if self.event_time else None,
            "location": self.location,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "province": self.province,
            "district": self.district,
            "organizer": self.organizer,
            "expected_attendees": self.expected_attendees,
            "actual_attendees": self.actual_attendees,
            "status": self.status,
        }


class EventRsvp(Base):
    __tablename__ = "event_rsvps"
    __table_args__ = (
        UniqueConstraint("event_id", "member_id", name="uq_event_rsvps_event_member"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    response: Mapped[str] = mapped_column(String(16), nullable=False, default="Maybe")
    responded_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    checked_in: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    checked_in_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    event: Mapped["Event"] = relationship("Event", back_populates="rsvps")
    member: Mapped["Member"] = relationship("Member", back_populates="rsvps")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "member_id": self.member_id,
            "membership_id": self.member.membership_id if self.member else None,
            "member_name": self.member.full_name if self.member else None,
            "response": self.response,
            "responded_at": self.responded_at.isoformat() if self.responded_at else None,
            "checked_in": self.checked_in,
            "checked_in_at": self.checked_in_at.isoformat() if self.checked_in_at else None,
            "notes": self.notes,
        }
