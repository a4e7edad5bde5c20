from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.pmms.db import db_session
from app.pmms.errors import ValidationError
from app.pmms.modules.members.service import (
    approval_level,
    advance_member,
    bulk_approve,
    create_member,
    delete_member,
    get_visible_member,
    query_members,
    set_status,
    update_member,
)
from app.pmms.rbac import VIEW_MEMBER_PERMISSIONS, require_permission
from app.pmms.utils import current_user, paginate, pagination_args, request_payload

bp = Blueprint("members", __name__)


def _member_json(member) -> dict:
    d = member.to_dict()
    d["approval_level"] = approval_level(member.status)
    return d


# ---------- List ----------
@bp.get("/members")
@require_permission(*VIEW_MEMBER_PERMISSIONS)
def members_list():
    s = db_session()
    filters = {k: request.args.get(k) for k in ("q", "search", "status", "province", "district", "membership_level")}
    page, per_page = pagination_args()
    items, total = paginate(query_members(s, current_user(), filters), page, per_page)
    return jsonify(
        {
            "items": [_member_json(m) for m in items],
            "total": total,
            "page": page,
            "per_page": per_page,
        }
    )


# ---------- Detail ----------
@bp.get("/members/<member_ref>")
@require_permission(*VIEW_MEMBER_PERMISSIONS)
def members_detail(member_ref: str):
    s = db_session()
    member = get_visible_member(s, current_user(), member_ref)
    return jsonify(_member_json(member))


# ---------- Create ----------
@bp.post("/members")
@require_permission("approve_members")
def members_create():
    s = db_session()
    member = create_member(
        s,
        request_payload(),
        current_user(),
        membership_id_prefix=current_app.config.get("MEMBERSHIP_ID_PREFIX") or "UPND",
        default_commitment=current_app.config.get("PARTY_COMMITMENT"),
    )
    s.commit()
    return jsonify(_member_json(member)), 201


# ---------- Edit ----------
@bp.patch("/members/<member_ref>")
@require_permission("approve_members")
def members_update(member_ref: str):
    s = db_session()
    user = current_user()
    payload = request_payload()
    member = get_visible_member(s, user, member_ref)
    update_member(s, member, payload, user, expected_version=payload.get("version"))
    s.commit()
    return jsonify(_member_json(member))


@bp.post("/members/<member_ref>/status")
@require_permission("approve_members")
def members_status(member_ref: str):
    s = db_session()
    user = current_user()
    payload = request_payload()
    member = get_visible_member(s, user, member_ref)
    set_status(
        s,
        member,
        payload.get("status") or "",
        user,
        reason=payload.get("reason"),
        expected_version=payload.get("version"),
    )
    s.commit()
    return jsonify(_member_json(member))


@bp.post("/members/<member_ref>/advance")
@require_permission("review_applications", "approve_members")
def members_advance(member_ref: str):
    s = db_session()
    user = current_user()
    member = get_visible_member(s, user, member_ref)
    advance_member(s, member, user, reason=request_payload().get("reason"))
    s.commit()
    return jsonify(_member_json(member))


@bp.post("/members/bulk-approve")
@require_permission("approve_members")
def members_bulk_approve():
    s = db_session()
    ids = request_payload().get("member_ids")
    if not isinstance(ids, list):
        raise ValidationError({"member_ids": "member_ids must be a list."})
    result = bulk_approve(s, ids, current_user())
    s.commit()
    return jsonify(result.to_dict())


# ---------- Delete ----------
@bp.delete("/members/<member_ref>")
@require_permission("manage_users")
def members_delete(member_ref: str):
    s = db_session()
    user = current_user()
    member = get_visible_member(s, user, member_ref)
    delete_member(s, member, user, reason=request.args.get("reason"))
    s.commit()
    return "", 204
