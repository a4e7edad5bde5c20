from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from app.pmms.audit import record_event
from app.pmms.constants import COMMUNICATION_TYPES
from app.pmms.errors import NotFoundError, TransitionError, ValidationError
from app.pmms.jurisdiction import JURISDICTION_FIELDS
from app.pmms.modules.members.service import query_members
from app.pmms.rbac import ensure_permission
from app.pmms.utils import clean_str, parse_db_id

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.pmms.models import User
    from app.pmms.modules.communications.models import Communication
    from app.pmms.modules.members.models import Member

logger = logging.getLogger(__name__)

MIN_MESSAGE_LENGTH = 10
FILTER_KEYS = JURISDICTION_FIELDS + ("status", "membership_level")
_FILTER_ALIASES = {"membershipLevel": "membership_level"}


def normalize_recipient_filter(raw: Any) -> dict[str, str]:
    """Keep known keys with non-empty values; `all` means no filter."""
    if not isinstance(raw, dict):
        return {}
    out: dict[str, str] = {}
    for key, value in raw.items():
        key = _FILTER_ALIASES.get(key, key)
        value = clean_str(value)
        if key in FILTER_KEYS and value and value != "all":
            out[key] = value
    return out


def recipients_query(s: "Session", user: "User | None", recipient_filter: dict[str, Any] | None) -> "Query":
    """Members matching the filter, inside the sender's jurisdiction."""
    from app.pmms.modules.members.models import Member

    flt = normalize_recipient_filter(recipient_filter)
    q = query_members(s, user, {k: flt.get(k) for k in ("status", "province", "district", "membership_level")})
    for key in ("constituency", "ward", "branch", "section"):
        if key in flt:
            q = q.filter(getattr(Member, key) == flt[key])
    return q


def resolve_recipients(s: "Session", user: "User | None", recipient_filter: dict[str, Any] | None) -> list["Member"]:
    return recipients_query(s, user, recipient_filter).all()


def validate_communication_payload(payload: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    ctype = clean_str(payload.get("type"))
    if ctype not in COMMUNICATION_TYPES:
        errors["type"] = f"Type must be one of: {', '.join(COMMUNICATION_TYPES)}"
    if len(clean_str(payload.get("message")) or "") < MIN_MESSAGE_LENGTH:
        errors["message"] = f"Message must be at least {MIN_MESSAGE_LENGTH} characters."
    if ctype in ("Email", "Both") and not clean_str(payload.get("subject")):
        errors["subject"] = "Subject is required for email."
    raw_filter = payload.get("recipient_filter")
    if raw_filter is not None and not isinstance(raw_filter, dict):
        errors["recipient_filter"] = "Recipient filter must be an object."
    return errors


def get_communication(s: "Session", communication_id: Any) -> "Communication":
    from app.pmms.modules.communications.models import Communication

    comm = s.get(Communication, parse_db_id(communication_id) or 0)
    if comm is None:
        raise NotFoundError("Communication", communication_id)
    return comm


def query_communications(s: "Session", filters: dict[str, Any] | None = None) -> "Query":
    from app.pmms.modules.communications.models import Communication

    filters = filters or {}
    q = s.query(Communication)
    for key in ("status", "type"):
        value = clean_str(filters.get(key))
        if value and value != "all":
            q = q.filter(getattr(Communication, key) == value)
    return q.order_by(Communication.created_at.desc(), Communication.id.desc())


def create_communication(s: "Session", payload: dict[str, Any], user: "User") -> "Communication":
    from app.pmms.modules.communications.models import Communication

    ensure_permission(user, "approve_members")
    errors = validate_communication_payload(payload)
    if errors:
        raise ValidationError(errors)

    now = datetime.utcnow()
    comm = Communication(
        type=clean_str(payload.get("type")),
        subject=clean_str(payload.get("subject")),
        message=clean_str(payload.get("message")),
        recipient_filter=normalize_recipient_filter(payload.get("recipient_filter")),
        status="Draft",
        sent_by=user.name or user.email,
        created_by_user_id=user.id,
        created_at=now,
        updated_at=now,
    )
    # Preview count; the final list is resolved again at send time.
    comm.recipients_count = recipients_query(s, user, comm.recipient_filter).order_by(None).count()
    s.add(comm)
    s.flush()
    record_event(
        s,
        actor=user,
        action="communication.create",
        entity_type="Communication",
        entity_id=str(comm.id),
        metadata={"type": comm.type, "filter": comm.recipient_filter, "recipients": comm.recipients_count},
    )
    return comm


def send_communication(s: "Session", comm: "Communication", user: "User") -> "Communication":
    """
    Draft -> Sending -> Sent. Records one Pending recipient row per member;
    delivery belongs to the gateway. A database failure while recording
    recipients leaves the communication Failed.
    """
    from app.pmms.modules.communications.models import CommunicationRecipient

    ensure_permission(user, "approve_members")
    if comm.status != "Draft":
        raise TransitionError(f"Communication {comm.id} is {comm.status}; only drafts can be sent.")

    comm.status = "Sending"
    comm.updated_at = datetime.utcnow()
    s.flush()

    members = resolve_recipients(s, user, comm.recipient_filter)
    try:
        with s.begin_nested():
            for member in members:
                s.add(CommunicationRecipient(communication=comm, member=member, status="Pending"))
            s.flush()
    except SQLAlchemyError:
        logger.exception("Recording recipients failed for communication %s", comm.id)
        s.expire(comm, ["recipients"])
        comm.status = "Failed"
        comm.failed_count = len(members)
        comm.sent_count = 0
    else:
        comm.status = "Sent"
        comm.sent_count = len(members)
        comm.failed_count = 0
        comm.sent_at = datetime.utcnow()
    comm.recipients_count = len(members)
    comm.sent_by = user.name or user.email
    comm.updated_at = datetime.utcnow()
    s.flush()

    record_event(
        s,
        actor=user,
        action="communication.send",
        entity_type="Communication",
        entity_id=str(comm.id),
        metadata={"status": comm.status, "recipients": comm.recipients_count},
    )
    logger.info("Communication %s %s to %s recipients", comm.id, comm.status.lower(), comm.recipients_count)
    return comm
