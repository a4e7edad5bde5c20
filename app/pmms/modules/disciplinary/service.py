from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_
from werkzeug.utils import secure_filename

from app.pmms.audit import record_event
from app.pmms.constants import CASE_SEVERITIES, CASE_STATUSES, EVIDENCE_TYPES
from app.pmms.errors import NotFoundError, ValidationError
from app.pmms.jurisdiction import scope_query
from app.pmms.modules.members.service import get_visible_member
from app.pmms.rbac import ensure_permission
from app.pmms.storage import build_evidence_key, file_digest
from app.pmms.utils import clean_str, parse_date, parse_db_id

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.pmms.models import User
    from app.pmms.modules.disciplinary.models import CaseAction, CaseEvidence, CaseNote, DisciplinaryCase
    from app.pmms.storage import Storage

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 20


def _actor_name(user: "User | None") -> str:
    if user is None:
        return "System"
    return user.name or user.email


def next_case_number(s: "Session", year: int | None = None) -> str:
    """`DC-<year>-<seq>`; sequence restarts each year."""
    from app.pmms.modules.disciplinary.models import DisciplinaryCase

    year = year or date.today().year
    prefix = f"DC-{year}-"
    existing = s.query(DisciplinaryCase.case_number).filter(DisciplinaryCase.case_number.like(f"{prefix}%")).all()
    seq = 0
    for (number,) in existing:
        tail = number[len(prefix):]
        if tail.isdigit():
            seq = max(seq, int(tail))
    return f"{prefix}{seq + 1:04d}"


def validate_case_payload(payload: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not clean_str(payload.get("violation_type")):
        errors["violation_type"] = "Violation type is required."
    description = clean_str(payload.get("description")) or ""
    if len(description) < MIN_DESCRIPTION_LENGTH:
        errors["description"] = f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters."
    if not clean_str(payload.get("reporting_officer")):
        errors["reporting_officer"] = "Reporting officer is required."
    severity = clean_str(payload.get("severity"))
    if severity and severity not in CASE_SEVERITIES:
        errors["severity"] = f"Severity must be one of: {', '.join(CASE_SEVERITIES)}"
    status = clean_str(payload.get("status"))
    if status and status not in CASE_STATUSES:
        errors["status"] = f"Status must be one of: {', '.join(CASE_STATUSES)}"
    try:
        parse_date(payload.get("date_incident"))
    except (TypeError, ValueError):
        errors["date_incident"] = "Incident date must be a date (YYYY-MM-DD)."
    return errors


def query_cases(s: "Session", user: "User | None", filters: dict[str, Any] | None = None) -> "Query":
    """Cases whose member is inside the user's jurisdiction, newest first."""
    from app.pmms.modules.disciplinary.models import DisciplinaryCase
    from app.pmms.modules.members.models import Member

    filters = filters or {}
    q = scope_query(s.query(DisciplinaryCase).join(Member, DisciplinaryCase.member_id == Member.id), user)

    search = clean_str(filters.get("search") or filters.get("q"))
    if search:
        like = f"%{search}%"
        q = q.filter(
            or_(
                DisciplinaryCase.case_number.ilike(like),
                DisciplinaryCase.member_name.ilike(like),
                DisciplinaryCase.violation_type.ilike(like),
                Member.membership_id.ilike(like),
            )
        )
    status = clean_str(filters.get("status"))
    if status and status != "all":
        q = q.filter(DisciplinaryCase.status == status)
    for key in ("severity", "violation_type"):
        value = clean_str(filters.get(key))
        if value and value != "all":
            q = q.filter(getattr(DisciplinaryCase, key) == value)
    member_ref = clean_str(filters.get("member_id"))
    if member_ref:
        if member_ref.isascii() and member_ref.isdigit():
            q = q.filter(DisciplinaryCase.member_id == (parse_db_id(member_ref) or 0))
        else:
            q = q.filter(Member.membership_id == member_ref)
    return q.order_by(DisciplinaryCase.created_at.desc(), DisciplinaryCase.id.desc())


def get_visible_case(s: "Session", user: "User | None", case_ref: Any) -> "DisciplinaryCase":
    from app.pmms.modules.disciplinary.models import DisciplinaryCase

    q = query_cases(s, user)
    ref = str(case_ref).strip()
    if ref.isascii() and ref.isdigit():
        case = q.filter(DisciplinaryCase.id == (parse_db_id(ref) or 0)).one_or_none()
    else:
        case = q.filter(DisciplinaryCase.case_number == ref).one_or_none()
    if case is None:
        raise NotFoundError("Disciplinary case", case_ref)
    return case


def create_case(s: "Session", payload: dict[str, Any], user: "User") -> "DisciplinaryCase":
    from app.pmms.modules.disciplinary.models import DisciplinaryCase

    ensure_permission(user, "manage_disciplinary")
    errors = validate_case_payload(payload)
    member_ref = payload.get("member_id")
    if member_ref in (None, ""):
        errors["member_id"] = "Member is required."
    if errors:
        raise ValidationError(errors)

    member = get_visible_member(s, user, member_ref)
    now = datetime.utcnow()
    case = DisciplinaryCase(
        case_number=next_case_number(s),
        member_id=member.id,
        member_name=member.full_name,
        violation_type=clean_str(payload.get("violation_type")),
        description=clean_str(payload.get("description")),
        severity=clean_str(payload.get("severity")) or "Medium",
        status=clean_str(payload.get("status")) or "Active",
        date_reported=date.today(),
        date_incident=parse_date(payload.get("date_incident")),
        reporting_officer=clean_str(payload.get("reporting_officer")),
        assigned_officer=clean_str(payload.get("assigned_officer")),
        created_at=now,
        updated_at=now,
    )
    case.member = member
    s.add(case)
    s.flush()

    record_event(
        s,
        actor=user,
        action="disciplinary.create",
        entity_type="DisciplinaryCase",
        entity_id=case.case_number,
        metadata={"membership_id": member.membership_id, "severity": case.severity, "violation_type": case.violation_type},
    )
    logger.info("Disciplinary case opened %s for %s", case.case_number, member.membership_id)
    return case


def update_case_status(
    s: "Session",
    case: "DisciplinaryCase",
    new_status: str,
    user: "User",
    *,
    note: str | None = None,
    resolution: str | None = None,
) -> "DisciplinaryCase":
    """Change status; an optional note is appended in the same transaction."""
    ensure_permission(user, "manage_disciplinary")
    new_status = (new_status or "").strip()
    if new_status not in CASE_STATUSES:
        raise ValidationError({"status": f"Status must be one of: {', '.join(CASE_STATUSES)}"})

    old_status = case.status
    case.status = new_status
    if clean_str(resolution):
        case.resolution = clean_str(resolution)
    case.updated_at = datetime.utcnow()
    if clean_str(note):
        add_note(s, case, note, user)
    s.flush()

    record_event(
        s,
        actor=user,
        action="disciplinary.status",
        entity_type="DisciplinaryCase",
        entity_id=case.case_number,
        metadata={"from": old_status, "to": new_status},
    )
    return case


def assign_officer(s: "Session", case: "DisciplinaryCase", officer: str, user: "User") -> "DisciplinaryCase":
    ensure_permission(user, "manage_disciplinary")
    officer = clean_str(officer)
    if not officer:
        raise ValidationError({"assigned_officer": "Officer is required."})
    old = case.assigned_officer
    case.assigned_officer = officer
    case.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="disciplinary.assign",
        entity_type="DisciplinaryCase",
        entity_id=case.case_number,
        metadata={"from": old, "to": officer},
    )
    return case


def add_note(s: "Session", case: "DisciplinaryCase", note: str, user: "User") -> "CaseNote":
    from app.pmms.modules.disciplinary.models import CaseNote

    ensure_permission(user, "manage_disciplinary")
    text = clean_str(note)
    if not text:
        raise ValidationError({"note": "Note text is required."})
    row = CaseNote(note=text, author=_actor_name(user), note_date=datetime.utcnow())
    case.notes.append(row)
    case.updated_at = datetime.utcnow()
    s.flush()
    record_event(
        s,
        actor=user,
        action="disciplinary.note",
        entity_type="DisciplinaryCase",
        entity_id=case.case_number,
        metadata={"note_id": row.id},
    )
    return row


def add_action(s: "Session", case: "DisciplinaryCase", payload: dict[str, Any], user: "User") -> "CaseAction":
    from app.pmms.modules.disciplinary.models import CaseAction

    ensure_permission(user, "manage_disciplinary")
    action = clean_str(payload.get("action"))
    if not action:
        raise ValidationError({"action": "Action is required."})
    try:
        action_date = parse_date(payload.get("date")) or date.today()
    except (TypeError, ValueError):
        raise ValidationError({"date": "Action date must be a date (YYYY-MM-DD)."})

    row = CaseAction(
        action=action,
        action_date=action_date,
        officer=clean_str(payload.get("officer")) or _actor_name(user),
        notes=clean_str(payload.get("notes")),
    )
    case.actions.append(row)
    case.updated_at = datetime.utcnow()
    s.flush()
    record_event(
        s,
        actor=user,
        action="disciplinary.action",
        entity_type="DisciplinaryCase",
        entity_id=case.case_number,
        metadata={"action": action, "action_id": row.id},
    )
    return row


def add_evidence(
    s: "Session",
    case: "DisciplinaryCase",
    payload: dict[str, Any],
    user: "User",
    *,
    file_bytes: bytes | None = None,
    filename: str | None = None,
    content_type: str | None = None,
    storage: "Storage | None" = None,
) -> "CaseEvidence":
    """Attach evidence; when a file is given it is written to storage first."""
    from app.pmms.modules.disciplinary.models import CaseEvidence

    ensure_permission(user, "manage_disciplinary")
    errors: dict[str, str] = {}
    evidence_type = clean_str(payload.get("type") or payload.get("evidence_type"))
    if evidence_type not in EVIDENCE_TYPES:
        errors["type"] = f"Evidence type must be one of: {', '.join(EVIDENCE_TYPES)}"
    description = clean_str(payload.get("description"))
    if not description:
        errors["description"] = "Description is required."
    if errors:
        raise ValidationError(errors)

    row = CaseEvidence(
        evidence_type=evidence_type,
        description=description,
        uploaded_by=_actor_name(user),
        upload_date=date.today(),
    )
    if file_bytes is not None:
        if storage is None:
            from flask import current_app
            from app.pmms.storage import storage_from_config

            storage = storage_from_config(current_app.config)
        safe_name = secure_filename(filename or "") or "evidence.bin"
        key = build_evidence_key(case.case_number, safe_name)
        storage.put_bytes(key, file_bytes, content_type=content_type)
        row.storage_key = key
        row.original_filename = safe_name
        row.content_type = content_type
        row.sha256, row.size_bytes = file_digest(file_bytes)

    case.evidence.append(row)
    case.updated_at = datetime.utcnow()
    s.flush()
    record_event(
        s,
        actor=user,
        action="disciplinary.evidence",
        entity_type="DisciplinaryCase",
        entity_id=case.case_number,
        metadata={"evidence_id": row.id, "type": evidence_type, "filename": row.original_filename},
    )
    return row

