from __future__ import annotations

from collections import Counter
from datetime import datetime, time
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from app.pmms.audit import record_event
from app.pmms.constants import EVENT_STATUSES, RSVP_RESPONSES
from app.pmms.errors import DuplicateError, NotFoundError, ValidationError
from app.pmms.modules.members.service import get_visible_member
from app.pmms.rbac import ensure_permission
from app.pmms.utils import clean_str, parse_date, parse_db_id, parse_float, parse_int

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.pmms.models import User
    from app.pmms.modules.events.models import Event, EventRsvp

EVENT_FIELDS = (
    "event_name",
    "event_type",
    "description",
    "event_date",
    "event_time",
    "location",
    "latitude",
    "longitude",
    "province",
    "district",
    "organizer",
    "expected_attendees",
    "actual_attendees",
    "status",
)


def _parse_time(value: Any) -> time | None:
    if value is None or isinstance(value, time):
        return value
    s = str(value).strip()
    if not s:
        return None
    return time.fromisoformat(s[:8] if s.count(":") >= 2 else s[:5])


def validate_event_payload(data: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    if len(clean_str(data.get("event_name")) or "") < 3:
        errors["event_name"] = "Event name must be at least 3 characters."
    if not clean_str(data.get("event_type")):
        errors["event_type"] = "Event type is required."
    if len(clean_str(data.get("location")) or "") < 3:
        errors["location"] = "Location must be at least 3 characters."
    if not clean_str(data.get("organizer")):
        errors["organizer"] = "Organizer is required."
    try:
        if parse_date(data.get("event_date")) is None:
            errors["event_date"] = "Event date is required."
    except (TypeError, ValueError):
        errors["event_date"] = "Event date must be a date (YYYY-MM-DD)."
    try:
        _parse_time(data.get("event_time"))
    except (TypeError, ValueError):
        errors["event_time"] = "Event time must be HH:MM."
    for key in ("expected_attendees", "actual_attendees"):
        raw = data.get(key)
        if raw in (None, ""):
            continue
        value = parse_int(raw)
        if value is None or value < 0:
            errors[key] = "Attendee counts must be whole numbers of zero or more."
    for key, bound in (("latitude", 90.0), ("longitude", 180.0)):
        try:
            value = parse_float(data.get(key))
        except (TypeError, ValueError):
            errors[key] = f"{key.capitalize()} must be a number."
            continue
        if value is not None and not -bound <= value <= bound:
            errors[key] = f"{key.capitalize()} is out of range."
    status = clean_str(data.get("status"))
    if status and status not in EVENT_STATUSES:
        errors["status"] = f"Status must be one of: {', '.join(EVENT_STATUSES)}"
    return errors


def _coerce(key: str, value: Any) -> Any:
    if key == "event_date":
        return parse_date(value)
    if key == "event_time":
        return _parse_time(value)
    if key in ("latitude", "longitude"):
        return parse_float(value)
    if key in ("expected_attendees", "actual_attendees"):
        return parse_int(value, 0)
    return clean_str(value)


def query_events(s: "Session", filters: dict[str, Any] | None = None) -> "Query":
    from app.pmms.modules.events.models import Event

    filters = filters or {}
    q = s.query(Event)
    search = clean_str(filters.get("search") or filters.get("q"))
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Event.event_name.ilike(like), Event.location.ilike(like), Event.organizer.ilike(like)))
    for key, column in (("type", Event.event_type), ("status", Event.status), ("province", Event.province), ("district", Event.district)):
        value = clean_str(filters.get(key))
        if value and value != "all":
            q = q.filter(column == value)
    try:
        date_from = parse_date(filters.get("date_from"))
        date_to = parse_date(filters.get("date_to"))
    except (TypeError, ValueError):
        raise ValidationError({"date_from": "Date filters must be YYYY-MM-DD."})
    if date_from:
        q = q.filter(Event.event_date >= date_from)
    if date_to:
        q = q.filter(Event.event_date <= date_to)
    return q.order_by(Event.event_date.desc(), Event.id.desc())


def get_event(s: "Session", event_id: Any) -> "Event":
    from app.pmms.modules.events.models import Event

    event = s.get(Event, parse_db_id(event_id) or 0)
    if event is None:
        raise NotFoundError("Event", event_id)
    return event


def create_event(s: "Session", payload: dict[str, Any], user: "User") -> "Event":
    from app.pmms.modules.events.models import Event

    ensure_permission(user, "manage_events")
    errors = validate_event_payload(payload)
    if errors:
        raise ValidationError(errors)

    now = datetime.utcnow()
    event = Event(created_at=now, updated_at=now)
    for key in EVENT_FIELDS:
        if key in payload:
            setattr(event, key, _coerce(key, payload[key]))
    event.status = event.status or "Planned"
    event.expected_attendees = event.expected_attendees or 0
    event.actual_attendees = event.actual_attendees or 0
    s.add(event)
    s.flush()
    record_event(
        s,
        actor=user,
        action="event.create",
        entity_type="Event",
        entity_id=str(event.id),
        metadata={"name": event.event_name, "date": event.event_date},
    )
    return event


def update_event(s: "Session", event: "Event", payload: dict[str, Any], user: "User") -> "Event":
    ensure_permission(user, "manage_events")
    merged = event.to_dict()
    merged.update({k: v for k, v in payload.items() if k in EVENT_FIELDS})
    errors = validate_event_payload(merged)
    if errors:
        raise ValidationError(errors)

    changes = {}
    for key in EVENT_FIELDS:
        if key not in payload:
            continue
        new = _coerce(key, payload[key])
        if key in ("expected_attendees", "actual_attendees"):
            new = new or 0
        old = getattr(event, key)
        if old != new:
            changes[key] = {"old": old, "new": new}
            setattr(event, key, new)
    if changes:
        event.updated_at = datetime.utcnow()
        record_event(
            s,
            actor=user,
            action="event.update",
            entity_type="Event",
            entity_id=str(event.id),
            metadata={"changes": changes},
        )
    return event


def set_event_status(s: "Session", event: "Event", status: str, user: "User") -> "Event":
    ensure_permission(user, "manage_events")
    status = (status or "").strip()
    if status not in EVENT_STATUSES:
        raise ValidationError({"status": f"Status must be one of: {', '.join(EVENT_STATUSES)}"})
    old = event.status
    event.status = status
    event.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="event.status",
        entity_type="Event",
        entity_id=str(event.id),
        metadata={"from": old, "to": status},
    )
    return event


def upsert_rsvp(s: "Session", event: "Event", payload: dict[str, Any], user: "User") -> "EventRsvp":
    """One RSVP per (event, member); a repeat RSVP updates the response."""
    from app.pmms.modules.events.models import EventRsvp

    ensure_permission(user, "manage_events")
    response = clean_str(payload.get("response")) or "Maybe"
    if response not in RSVP_RESPONSES:
        raise ValidationError({"response": f"Response must be one of: {', '.join(RSVP_RESPONSES)}"})
    member = get_visible_member(s, user, payload.get("member_id"))

    now = datetime.utcnow()
    rsvp = (
        s.query(EventRsvp)
        .filter(EventRsvp.event_id == event.id, EventRsvp.member_id == member.id)
        .one_or_none()
    )
    if rsvp is None:
        rsvp = EventRsvp(event=event, member=member, created_at=now)
        s.add(rsvp)
    rsvp.response = response
    rsvp.responded_at = now
    rsvp.updated_at = now
    if "notes" in payload:
        rsvp.notes = clean_str(payload.get("notes"))
    try:
        s.flush()
    except IntegrityError as e:
        s.rollback()
        raise DuplicateError("event_member", f"{event.id}/{member.membership_id}") from e

    record_event(
        s,
        actor=user,
        action="event.rsvp",
        entity_type="Event",
        entity_id=str(event.id),
        metadata={"membership_id": member.membership_id, "response": response},
    )
    return rsvp


def check_in(s: "Session", event: "Event", member_ref: Any, user: "User") -> "EventRsvp":
    """Mark attendance. Walk-ins without an RSVP get one recorded as Going."""
    from app.pmms.modules.events.models import EventRsvp

    ensure_permission(user, "manage_events")
    member = get_visible_member(s, user, member_ref)
    now = datetime.utcnow()
    rsvp = (
        s.query(EventRsvp)
        .filter(EventRsvp.event_id == event.id, EventRsvp.member_id == member.id)
        .one_or_none()
    )
    if rsvp is None:
        rsvp = EventRsvp(event=event, member=member, response="Going", responded_at=now, created_at=now)
        s.add(rsvp)
    if not rsvp.checked_in:
        rsvp.checked_in = True
        rsvp.checked_in_at = now
        event.actual_attendees = (event.actual_attendees or 0) + 1
    rsvp.updated_at = now
    s.flush()
    record_event(
        s,
        actor=user,
        action="event.check_in",
        entity_type="Event",
        entity_id=str(event.id),
        metadata={"membership_id": member.membership_id},
    )
    return rsvp


def rsvp_summary(rsvps) -> dict[str, int]:
    counts = Counter(r.response for r in rsvps)
    summary = {response: counts.get(response, 0) for response in RSVP_RESPONSES}
    summary["checked_in"] = sum(1 for r in rsvps if r.checked_in)
    summary["total"] = len(rsvps)
    return summary
