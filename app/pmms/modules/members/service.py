from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from app.pmms.audit import record_event
from app.pmms.constants import (
    INITIAL_STATUS,
    MEMBERSHIP_STATUSES,
    PENDING_STATUSES,
    STATUS_APPROVED,
)
from app.pmms.errors import (
    ConflictError,
    DuplicateError,
    NotFoundError,
    PMMSError,
    TransitionError,
    ValidationError,
)
from app.pmms.jurisdiction import JURISDICTION_FIELDS, can_see, member_field_for_level, scope_query
from app.pmms.modules.members.utils import (
    PROFILE_FIELDS,
    generate_membership_id,
    normalize_member_payload,
    validate_member_payload,
)
from app.pmms.rbac import ensure_permission
from app.pmms.utils import clean_str, parse_date, parse_db_id, parse_float

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.pmms.models import User
    from app.pmms.modules.members.models import Member

logger = logging.getLogger(__name__)

# Pending ladder: each stage hands over to the next; the last one to Approved.
NEXT_STAGE = dict(zip(PENDING_STATUSES, PENDING_STATUSES[1:] + (STATUS_APPROVED,)))

APPROVAL_LEVELS = {
    "Pending Section Review": "Section Level",
    "Pending Branch Review": "Branch Level",
    "Pending Ward Review": "Ward Level",
    "Pending District Review": "District Level",
    "Pending Provincial Review": "Provincial Level",
}


@dataclass
class BulkResult:
    succeeded: list[str] = field(default_factory=list)
    failed: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "succeeded": list(self.succeeded),
            "failed": [dict(f) for f in self.failed],
            "succeeded_count": len(self.succeeded),
            "failed_count": len(self.failed),
        }


def approval_level(status: str | None) -> str:
    return APPROVAL_LEVELS.get(status or "", "Final Review")


def is_pending(status: str | None) -> bool:
    return "Pending" in (status or "")


# ---------------------------------------------------------------------------
# Pure filtering (works on any iterable of member-like objects)
# ---------------------------------------------------------------------------

def _matches_status(member: Any, status: str | None) -> bool:
    if not status or status == "all":
        return True
    if status == "pending":
        return is_pending(member.status)
    return member.status == status


def _matches_search(member: Any, needle: str) -> bool:
    for attr in ("full_name", "membership_id", "nrc_number"):
        value = getattr(member, attr, None) or ""
        if needle in value.lower():
            return True
    return False


def filter_members(members: Iterable[Any], search: str | None = None, status: str | None = "all") -> list:
    """Search (case-insensitive substring) and status filter; input order preserved."""
    needle = (search or "").strip().lower()
    out = []
    for m in members:
        if needle and not _matches_search(m, needle):
            continue
        if not _matches_status(m, status):
            continue
        out.append(m)
    return out


def sort_most_recent_first(members: Iterable[Any]) -> list:
    return sorted(members, key=lambda m: m.registration_date or datetime.min, reverse=True)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def apply_member_filters(query: "Query", filters: dict[str, Any]) -> "Query":
    """SQL counterpart of `filter_members`, plus location and level filters."""
    from app.pmms.modules.members.models import Member

    search = clean_str(filters.get("search") or filters.get("q"))
    if search:
        like = f"%{search}%"
        query = query.filter(
            or_(
                Member.full_name.ilike(like),
                Member.membership_id.ilike(like),
                Member.nrc_number.ilike(like),
                Member.phone.ilike(like),
            )
        )
    status = clean_str(filters.get("status")) or "all"
    if status == "pending":
        query = query.filter(Member.status.in_(PENDING_STATUSES))
    elif status != "all":
        query = query.filter(Member.status == status)
    for key in ("province", "district", "membership_level"):
        value = clean_str(filters.get(key))
        if value:
            query = query.filter(getattr(Member, key) == value)
    return query


def query_members(s: "Session", user: "User | None", filters: dict[str, Any] | None = None) -> "Query":
    from app.pmms.modules.members.models import Member

    query = scope_query(s.query(Member), user)
    query = apply_member_filters(query, filters or {})
    return query.order_by(Member.registration_date.desc(), Member.id.desc())


def _lookup(s: "Session", member_ref: Any) -> "Member | None":
    from app.pmms.modules.members.models import Member

    if isinstance(member_ref, bool):
        raise ValueError("invalid member id")
    if isinstance(member_ref, int):
        pk = parse_db_id(member_ref)
        if pk is None:
            raise ValueError("invalid member id")
        return s.get(Member, pk)
    if isinstance(member_ref, str) and member_ref.strip():
        ref = member_ref.strip()
        if ref.isascii() and ref.isdigit():
            pk = parse_db_id(ref)
            if pk is None:
                raise ValueError("invalid member id")
            return s.get(Member, pk)
        return s.query(Member).filter(Member.membership_id == ref).one_or_none()
    raise ValueError("invalid member id")


def get_visible_member(s: "Session", user: "User | None", member_ref: Any) -> "Member":
    """
    Load a member by primary key or membership id. Members outside the
    user's jurisdiction are reported as missing.
    """
    try:
        member = _lookup(s, member_ref)
    except ValueError:
        raise NotFoundError("Member", member_ref)
    if member is None or not can_see(user, member):
        raise NotFoundError("Member", member_ref)
    return member


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def _unique_membership_id(s: "Session", prefix: str) -> str:
    from app.pmms.modules.members.models import Member

    candidate = generate_membership_id(prefix)
    now_ms = int(candidate[len(prefix):])
    while s.query(Member.id).filter(Member.membership_id == candidate).first() is not None:
        now_ms += 1
        candidate = generate_membership_id(prefix, now_ms)
    return candidate


def _ensure_nrc_free(s: "Session", nrc_number: str, exclude_id: int | None = None) -> None:
    from app.pmms.modules.members.models import Member

    q = s.query(Member.id).filter(Member.nrc_number == nrc_number)
    if exclude_id is not None:
        q = q.filter(Member.id != exclude_id)
    if q.first() is not None:
        raise DuplicateError("nrc_number", nrc_number)


def _ensure_in_scope(actor: "User | None", values: dict[str, Any]) -> None:
    """The resulting record must stay inside the acting admin's jurisdiction."""
    if actor is None or can_see(actor, SimpleNamespace(**values)):
        return
    try:
        field = member_field_for_level(actor.level) or "jurisdiction"
    except KeyError:
        field = "jurisdiction"
    raise ValidationError({field: "Outside your jurisdiction."})


def _flush(s: "Session", field_hint: str = "nrc_number", value: Any = None) -> None:
    try:
        s.flush()
    except IntegrityError as e:
        s.rollback()
        raise DuplicateError(field_hint, value) from e
    except StaleDataError as e:
        s.rollback()
        raise ConflictError("Member was modified by someone else; reload and try again.") from e


def _apply_fields(member: "Member", data: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Write normalized profile values onto `member`; returns the changed fields."""
    changes: dict[str, dict[str, Any]] = {}
    for key in PROFILE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key == "date_of_birth":
            value = parse_date(value)
        elif key in ("latitude", "longitude"):
            value = parse_float(value)
        elif isinstance(value, str):
            value = value or None
        old = getattr(member, key)
        if old != value:
            changes[key] = {"old": old, "new": value}
            setattr(member, key, value)
    return changes


def create_member(
    s: "Session",
    payload: dict[str, Any],
    actor: "User | None",
    *,
    membership_id_prefix: str = "UPND",
    default_commitment: str | None = None,
) -> "Member":
    """
    Register a member. Status always starts at the first pending stage,
    whatever the payload says.
    """
    from app.pmms.modules.members.models import Member

    data = normalize_member_payload(payload)
    errors = validate_member_payload(data)
    if errors:
        raise ValidationError(errors)
    _ensure_in_scope(actor, data)

    _ensure_nrc_free(s, data["nrc_number"])

    now = datetime.utcnow()
    member = Member(
        membership_id=_unique_membership_id(s, membership_id_prefix),
        status=INITIAL_STATUS,
        registration_date=now,
        created_at=now,
        updated_at=now,
    )
    _apply_fields(member, data)
    if not member.party_commitment:
        member.party_commitment = default_commitment
    if not member.gender:
        member.gender = "Male"
    if not member.membership_level:
        member.membership_level = "General"
    if member.skills is None:
        member.skills = []
    s.add(member)
    _flush(s, "nrc_number", member.nrc_number)

    record_event(
        s,
        actor=actor,
        action="member.create",
        entity_type="Member",
        entity_id=member.membership_id,
        metadata={"province": member.province, "district": member.district, "self_registered": actor is None},
    )
    logger.info("Member registered membership_id=%s province=%s", member.membership_id, member.province)
    return member


def _check_version(member: "Member", expected_version: Any) -> None:
    if expected_version is None or expected_version == "":
        return
    try:
        expected = int(expected_version)
    except (TypeError, ValueError):
        raise ValidationError({"version": "Version must be an integer."})
    if member.version != expected:
        raise ConflictError(
            f"Member {member.membership_id} is at version {member.version}, not {expected}; reload and try again."
        )


def update_member(
    s: "Session",
    member: "Member",
    payload: dict[str, Any],
    actor: "User | None",
    *,
    expected_version: Any = None,
) -> "Member":
    """Edit profile fields. The merged record is re-validated in full; status is untouched."""
    _check_version(member, expected_version)
    data = normalize_member_payload(payload)

    merged = {k: getattr(member, k) for k in PROFILE_FIELDS}
    merged.update(data)
    errors = validate_member_payload(merged)
    if errors:
        raise ValidationError(errors)
    _ensure_in_scope(actor, merged)

    if data.get("nrc_number") and data["nrc_number"] != member.nrc_number:
        _ensure_nrc_free(s, data["nrc_number"], exclude_id=member.id)

    changes = _apply_fields(member, data)
    if not changes:
        return member
    member.updated_at = datetime.utcnow()
    _flush(s, "nrc_number", member.nrc_number)

    record_event(
        s,
        actor=actor,
        action="member.update",
        entity_type="Member",
        entity_id=member.membership_id,
        metadata={"changes": changes},
    )
    return member


def set_status(
    s: "Session",
    member: "Member",
    new_status: str,
    actor: "User | None",
    *,
    reason: str | None = None,
    expected_version: Any = None,
) -> "Member":
    """
    Overwrite the member's status with any valid status. No ladder is enforced
    here; `advance_member` is the strict one-step alternative.
    """
    ensure_permission(actor, "approve_members")
    new_status = (new_status or "").strip()
    if new_status not in MEMBERSHIP_STATUSES:
        raise ValidationError({"status": f"Status must be one of: {', '.join(MEMBERSHIP_STATUSES)}"})
    _check_version(member, expected_version)

    old_status = member.status
    if old_status == new_status:
        return member
    member.status = new_status
    member.updated_at = datetime.utcnow()
    _flush(s, "membership_id", member.membership_id)

    record_event(
        s,
        actor=actor,
        action="member.status",
        entity_type="Member",
        entity_id=member.membership_id,
        reason=clean_str(reason),
        metadata={"from": old_status, "to": new_status},
    )
    logger.info("Member status membership_id=%s %s -> %s", member.membership_id, old_status, new_status)
    return member


def advance_member(s: "Session", member: "Member", actor: "User | None", *, reason: str | None = None) -> "Member":
    """Move a pending application one stage up the review ladder."""
    ensure_permission(actor, "review_applications", "approve_members")
    next_status = NEXT_STAGE.get(member.status)
    if next_status is None:
        raise TransitionError(f"Member {member.membership_id} is {member.status!r}; only pending applications advance.")

    old_status = member.status
    member.status = next_status
    member.updated_at = datetime.utcnow()
    _flush(s, "membership_id", member.membership_id)

    record_event(
        s,
        actor=actor,
        action="member.advance",
        entity_type="Member",
        entity_id=member.membership_id,
        reason=clean_str(reason),
        metadata={"from": old_status, "to": next_status},
    )
    logger.info("Member advanced membership_id=%s %s -> %s", member.membership_id, old_status, next_status)
    return member


def _dedupe(member_refs: Iterable[Any]) -> list[Any]:
    seen: set[str] = set()
    out = []
    for ref in member_refs:
        key = str(ref).strip() if isinstance(ref, (int, str)) and not isinstance(ref, bool) else repr(ref)
        if key in seen:
            continue
        seen.add(key)
        out.append(ref)
    return out


def bulk_approve(s: "Session", member_refs: Iterable[Any], actor: "User | None") -> BulkResult:
    """
    Approve each member independently. One bad id never blocks the others;
    failures are collected with their reason.
    """
    ensure_permission(actor, "approve_members")
    result = BulkResult()
    for ref in _dedupe(member_refs):
        try:
            with s.begin_nested():
                member = get_visible_member(s, actor, ref)
                if member.status == STATUS_APPROVED:
                    result.succeeded.append(member.membership_id)
                    continue
                old_status = member.status
                member.status = STATUS_APPROVED
                member.updated_at = datetime.utcnow()
                s.flush()
                record_event(
                    s,
                    actor=actor,
                    action="member.status",
                    entity_type="Member",
                    entity_id=member.membership_id,
                    reason="Bulk approval",
                    metadata={"from": old_status, "to": STATUS_APPROVED, "bulk": True},
                )
                s.flush()
            result.succeeded.append(member.membership_id)
        except (PMMSError, SQLAlchemyError, OverflowError) as e:
            message = e.message if isinstance(e, PMMSError) else "Database error."
            logger.warning("Bulk approve failed for %r: %s", ref, message)
            result.failed.append({"id": str(ref), "error": message})

    record_event(
        s,
        actor=actor,
        action="member.bulk_approve",
        entity_type="Member",
        metadata={"succeeded": len(result.succeeded), "failed": len(result.failed)},
    )
    return result


def delete_member(s: "Session", member: "Member", actor: "User | None", *, reason: str | None = None) -> None:
    """Hard delete; cases, cards, RSVPs and recipient rows go with the member."""
    ensure_permission(actor, "manage_users")
    snapshot = {f: getattr(member, f) for f in JURISDICTION_FIELDS}
    snapshot["full_name"] = member.full_name
    snapshot["status"] = member.status
    membership_id = member.membership_id
    s.delete(member)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="member.delete",
        entity_type="Member",
        entity_id=membership_id,
        reason=clean_str(reason),
        metadata=snapshot,
    )
    logger.info("Member deleted membership_id=%s", membership_id)
