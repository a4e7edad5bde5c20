from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.pmms.models import Base

if TYPE_CHECKING:
    from app.pmms.modules.members.models import Member


class MembershipCard(Base):
    __tablename__ = "membership_cards"
    __table_args__ = (
        Index("idx_membership_cards_expiry", "expiry_date"),
        Index("idx_membership_cards_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    card_type: Mapped[str] = mapped_column(String(32), nullable=False, default="Standard")
    issue_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    expiry_date: Mapped[date] = mapped_column(Date, nullable=False)
    qr_code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="Active")

    renewal_reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    renewal_reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    last_renewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    member: Mapped["Member"] = relationship("Member", back_populates="cards")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "member_id": self.member_id,
            "membership_id": self.member.membership_id if self.member else None,
            "member_name": self.member.full_name if self.member else None,
            "card_type": self.card_type,
            "issue_date": self.issue_date.isoformat() if self.issue_date else None,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "qr_code": self.qr_code,
            "status": self.status,
            "renewal_reminder_sent": self.renewal_reminder_sent,
            "renewal_reminder_sent_at": self.renewal_reminder_sent_at.isoformat() if self.renewal_reminder_sent_at else None,
            "last_renewed_at": self.last_renewed_at.isoformat() if self.last_renewed_at else None,
        }
