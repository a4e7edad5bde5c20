from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.pmms.constants import EVENT_STATUSES, EVENT_TYPES, RSVP_RESPONSES
from app.pmms.db import db_session
from app.pmms.modules.events.service import (
    check_in,
    create_event,
    get_event,
    query_events,
    rsvp_summary,
    set_event_status,
    update_event,
    upsert_rsvp,
)
from app.pmms.rbac import require_permission
from app.pmms.utils import current_user, paginate, pagination_args, request_payload

bp = Blueprint("events", __name__)


@bp.get("/events/options")
@require_permission("manage_events")
def events_options():
    return jsonify({"types": list(EVENT_TYPES), "statuses": list(EVENT_STATUSES), "responses": list(RSVP_RESPONSES)})


@bp.get("/events")
@require_permission("manage_events")
def events_list():
    s = db_session()
    filters = {k: request.args.get(k) for k in ("q", "search", "type", "status", "province", "district", "date_from", "date_to")}
    page, per_page = pagination_args()
    items, total = paginate(query_events(s, filters), page, per_page)
    return jsonify({"items": [e.to_dict() for e in items], "total": total, "page": page, "per_page": per_page})


@bp.get("/events/<int:event_id>")
@require_permission("manage_events")
def events_detail(event_id: int):
    s = db_session()
    event = get_event(s, event_id)
    d = event.to_dict()
    d["rsvp_summary"] = rsvp_summary(event.rsvps)
    return jsonify(d)


@bp.post("/events")
@require_permission("manage_events")
def events_create():
    s = db_session()
    event = create_event(s, request_payload(), current_user())
    s.commit()
    return jsonify(event.to_dict()), 201


@bp.patch("/events/<int:event_id>")
@require_permission("manage_events")
def events_update(event_id: int):
    s = db_session()
    event = get_event(s, event_id)
    update_event(s, event, request_payload(), current_user())
    s.commit()
    return jsonify(event.to_dict())


@bp.post("/events/<int:event_id>/status")
@require_permission("manage_events")
def events_status(event_id: int):
    s = db_session()
    event = get_event(s, event_id)
    set_event_status(s, event, request_payload().get("status") or "", current_user())
    s.commit()
    return jsonify(event.to_dict())


# ---------- RSVPs ----------
@bp.get("/events/<int:event_id>/rsvps")
@require_permission("manage_events")
def rsvps_list(event_id: int):
    s = db_session()
    event = get_event(s, event_id)
    return jsonify({"items": [r.to_dict() for r in event.rsvps], "summary": rsvp_summary(event.rsvps)})


@bp.post("/events/<int:event_id>/rsvps")
@require_permission("manage_events")
def rsvps_upsert(event_id: int):
    s = db_session()
    event = get_event(s, event_id)
    rsvp = upsert_rsvp(s, event, request_payload(), current_user())
    s.commit()
    return jsonify(rsvp.to_dict())


@bp.post("/events/<int:event_id>/check-in")
@require_permission("manage_events")
def rsvps_check_in(event_id: int):
    s = db_session()
    event = get_event(s, event_id)
    rsvp = check_in(s, event, request_payload().get("member_id"), current_user())
    s.commit()
    return jsonify(rsvp.to_dict())
