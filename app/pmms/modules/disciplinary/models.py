from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.pmms.models import Base

if TYPE_CHECKING:
    from app.pmms.modules.members.models import Member


class DisciplinaryCase(Base):
    """
    A reported violation against a member. Cases are never deleted; they move
    through statuses and accumulate actions, evidence and notes.
    """

    __tablename__ = "disciplinary_cases"
    __table_args__ = (
        Index("idx_disciplinary_cases_status", "status"),
        Index("idx_disciplinary_cases_member", "member_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    case_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)

    member_id: Mapped[int] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    member_name: Mapped[str] = mapped_column(String(255), nullable=False)  # denormalized for listings

    violation_type: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False, default="Medium")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="Active")

    date_reported: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    date_incident: Mapped[date | None] = mapped_column(Date, nullable=True)
    reporting_officer: Mapped[str] = mapped_column(String(255), nullable=False)
    assigned_officer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    resolution: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    member: Mapped["Member"] = relationship("Member", back_populates="disciplinary_cases")
    actions: Mapped[list["CaseAction"]] = relationship(
        "CaseAction", back_populates="case", cascade="all, delete-orphan", order_by="CaseAction.id"
    )
    evidence: Mapped[list["CaseEvidence"]] = relationship(
        "CaseEvidence", back_populates="case", cascade="all, delete-orphan", order_by="CaseEvidence.id"
    )
    notes: Mapped[list["CaseNote"]] = relationship(
        "CaseNote", back_populates="case", cascade="all, delete-orphan", order_by="CaseNote.id"
    )

    def to_dict(self, *, include_children: bool = False) -> dict:
        d = {
            "id": self.id,
            "case_number": self.case_number,
            "member_id": self.member_id,
            "membership_id": self.member.membership_id if self.member else None,
            "member_name": self.member_name,
            "violation_type": self.violation_type,
            "description": self.description,
            "severity": self.severity,
            "status": self.status,
            "date_reported": self.date_reported.isoformat() if self.date_reported else None,
            "date_incident": self.date_incident.isoformat() if self.date_incident else None,
            "reporting_officer": self.reporting_officer,
            "assigned_officer": self.assigned_officer,
            "resolution": self.resolution,
        }
        if include_children:
            d["actions"] = [a.to_dict() for a in self.actions]
            d["evidence"] = [e.to_dict() for e in self.evidence]
            d["notes"] = [n.to_dict() for n in self.notes]
        return d


class CaseAction(Base):
    """Append-only: an action taken on a case (hearing, warning issued, ...)."""

    __tablename__ = "disciplinary_case_actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    case_id: Mapped[int] = mapped_column(ForeignKey("disciplinary_cases.id", ondelete="CASCADE"), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    action_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    officer: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    case: Mapped["DisciplinaryCase"] = relationship("DisciplinaryCase", back_populates="actions")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "date": self.action_date.isoformat() if self.action_date else None,
            "officer": self.officer,
            "notes": self.notes,
        }


class CaseEvidence(Base):
    """Append-only: evidence attached to a case, optionally backed by a stored file."""

    __tablename__ = "disciplinary_case_evidence"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    case_id: Mapped[int] = mapped_column(ForeignKey("disciplinary_cases.id", ondelete="CASCADE"), nullable=False, index=True)
    evidence_type: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    uploaded_by: Mapped[str] = mapped_column(String(255), nullable=False)
    upload_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)

    storage_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_filename: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    sha256: Mapped[str | None] = mapped_column(String(64), nullable=True)
    size_bytes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    case: Mapped["DisciplinaryCase"] = relationship("DisciplinaryCase", back_populates="evidence")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.evidence_type,
            "description": self.description,
            "uploaded_by": self.uploaded_by,
            "upload_date": self.upload_date.isoformat() if self.upload_date else None,
            "filename": self.original_filename,
            "has_file": bool(self.storage_key),
            "size_bytes": self.size_bytes,
        }


class CaseNote(Base):
    """Append-only: free-text note on a case."""

    __tablename__ = "disciplinary_case_notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    case_id: Mapped[int] = mapped_column(ForeignKey("disciplinary_cases.id", ondelete="CASCADE"), nullable=False, index=True)
    note: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    note_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    case: Mapped["DisciplinaryCase"] = relationship("DisciplinaryCase", back_populates="notes")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "note": self.note,
            "author": self.author,
            "date": self.note_date.isoformat() if self.note_date else None,
        }
