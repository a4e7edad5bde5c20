from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.pmms.constants import CASE_SEVERITIES, CASE_STATUSES, EVIDENCE_TYPES, VIOLATION_TYPES
from app.pmms.db import db_session
from app.pmms.modules.disciplinary.service import (
    add_action,
    add_evidence,
    add_note,
    assign_officer,
    create_case,
    get_visible_case,
    query_cases,
    update_case_status,
)
from app.pmms.rbac import require_permission
from app.pmms.storage import storage_from_config
from app.pmms.utils import current_user, paginate, pagination_args, request_payload

bp = Blueprint("disciplinary", __name__)


@bp.get("/disciplinary/options")
@require_permission("manage_disciplinary")
def disciplinary_options():
    return jsonify(
        {
            "violation_types": list(VIOLATION_TYPES),
            "severities": list(CASE_SEVERITIES),
            "statuses": list(CASE_STATUSES),
            "evidence_types": list(EVIDENCE_TYPES),
        }
    )


# ---------- List ----------
@bp.get("/disciplinary/cases")
@require_permission("manage_disciplinary")
def cases_list():
    s = db_session()
    filters = {k: request.args.get(k) for k in ("q", "search", "status", "severity", "violation_type", "member_id")}
    page, per_page = pagination_args()
    items, total = paginate(query_cases(s, current_user(), filters), page, per_page)
    return jsonify({"items": [c.to_dict() for c in items], "total": total, "page": page, "per_page": per_page})


@bp.get("/disciplinary/cases/<case_ref>")
@require_permission("manage_disciplinary")
def cases_detail(case_ref: str):
    s = db_session()
    case = get_visible_case(s, current_user(), case_ref)
    return jsonify(case.to_dict(include_children=True))


# ---------- Create ----------
@bp.post("/disciplinary/cases")
@require_permission("manage_disciplinary")
def cases_create():
    s = db_session()
    case = create_case(s, request_payload(), current_user())
    s.commit()
    return jsonify(case.to_dict(include_children=True)), 201


# ---------- Workflow ----------
@bp.post("/disciplinary/cases/<case_ref>/status")
@require_permission("manage_disciplinary")
def cases_status(case_ref: str):
    s = db_session()
    user = current_user()
    payload = request_payload()
    case = get_visible_case(s, user, case_ref)
    update_case_status(
        s,
        case,
        payload.get("status") or "",
        user,
        note=payload.get("note"),
        resolution=payload.get("resolution"),
    )
    s.commit()
    return jsonify(case.to_dict(include_children=True))


@bp.post("/disciplinary/cases/<case_ref>/assign")
@require_permission("manage_disciplinary")
def cases_assign(case_ref: str):
    s = db_session()
    user = current_user()
    case = get_visible_case(s, user, case_ref)
    assign_officer(s, case, request_payload().get("assigned_officer") or "", user)
    s.commit()
    return jsonify(case.to_dict())


@bp.post("/disciplinary/cases/<case_ref>/notes")
@require_permission("manage_disciplinary")
def cases_add_note(case_ref: str):
    s = db_session()
    user = current_user()
    case = get_visible_case(s, user, case_ref)
    note = add_note(s, case, request_payload().get("note") or "", user)
    s.commit()
    return jsonify(note.to_dict()), 201


@bp.post("/disciplinary/cases/<case_ref>/actions")
@require_permission("manage_disciplinary")
def cases_add_action(case_ref: str):
    s = db_session()
    user = current_user()
    case = get_visible_case(s, user, case_ref)
    action = add_action(s, case, request_payload(), user)
    s.commit()
    return jsonify(action.to_dict()), 201


@bp.post("/disciplinary/cases/<case_ref>/evidence")
@require_permission("manage_disciplinary")
def cases_add_evidence(case_ref: str):
    s = db_session()
    user = current_user()
    case = get_visible_case(s, user, case_ref)
    f = request.files.get("file")
    kwargs = {}
    if f and f.filename:
        kwargs = {
            "file_bytes": f.read(),
            "filename": f.filename,
            "content_type": f.mimetype or "application/octet-stream",
            "storage": storage_from_config(current_app.config),
        }
    evidence = add_evidence(s, case, request_payload(), user, **kwargs)
    s.commit()
    return jsonify(evidence.to_dict()), 201
