from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.pmms.constants import COMMUNICATION_STATUSES, COMMUNICATION_TYPES
from app.pmms.db import db_session
from app.pmms.modules.communications.service import (
    create_communication,
    get_communication,
    query_communications,
    recipients_query,
    send_communication,
)
from app.pmms.rbac import require_permission
from app.pmms.utils import current_user, paginate, pagination_args, request_payload

bp = Blueprint("communications", __name__)


@bp.get("/communications")
@require_permission("approve_members")
def communications_list():
    s = db_session()
    filters = {k: request.args.get(k) for k in ("status", "type")}
    page, per_page = pagination_args()
    items, total = paginate(query_communications(s, filters), page, per_page)
    return jsonify(
        {
            "items": [c.to_dict() for c in items],
            "total": total,
            "page": page,
            "per_page": per_page,
            "types": list(COMMUNICATION_TYPES),
            "statuses": list(COMMUNICATION_STATUSES),
        }
    )


@bp.post("/communications/preview")
@require_permission("approve_members")
def communications_preview():
    s = db_session()
    flt = request_payload().get("recipient_filter")
    count = recipients_query(s, current_user(), flt if isinstance(flt, dict) else {}).order_by(None).count()
    return jsonify({"recipients_count": count})


@bp.get("/communications/<int:communication_id>")
@require_permission("approve_members")
def communications_detail(communication_id: int):
    s = db_session()
    comm = get_communication(s, communication_id)
    d = comm.to_dict()
    d["recipients"] = [r.to_dict() for r in comm.recipients]
    return jsonify(d)


@bp.post("/communications")
@require_permission("approve_members")
def communications_create():
    s = db_session()
    comm = create_communication(s, request_payload(), current_user())
    s.commit()
    return jsonify(comm.to_dict()), 201


@bp.post("/communications/<int:communication_id>/send")
@require_permission("approve_members")
def communications_send(communication_id: int):
    s = db_session()
    comm = get_communication(s, communication_id)
    send_communication(s, comm, current_user())
    s.commit()
    return jsonify(comm.to_dict())
