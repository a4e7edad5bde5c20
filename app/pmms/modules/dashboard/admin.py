from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.pmms.db import db_session
from app.pmms.modules.dashboard.geo import map_points, province_bounds, province_clusters
from app.pmms.modules.dashboard.notifications import derive_notifications
from app.pmms.modules.dashboard.statistics import (
    compute_approval_funnel,
    compute_statistics,
    summarize_cases,
    summarize_events,
)
from app.pmms.modules.disciplinary.service import query_cases
from app.pmms.modules.events.service import query_events
from app.pmms.modules.members.service import query_members, sort_most_recent_first
from app.pmms.modules.membership_cards.service import card_summary, query_cards
from app.pmms.rbac import (
    VIEW_MEMBER_PERMISSIONS,
    require_login,
    require_permission,
    user_has_any_permission,
    user_has_permission,
)
from app.pmms.utils import current_user

bp = Blueprint("dashboard", __name__)

RECENT_ACTIVITY_LIMIT = 10


def _visible_cases(s, user) -> list:
    if not user_has_permission(user, "manage_disciplinary"):
        return []
    return query_cases(s, user).all()


@bp.get("/statistics")
@require_permission(*VIEW_MEMBER_PERMISSIONS)
def statistics():
    s = db_session()
    user = current_user()
    members = query_members(s, user).all()
    stats = compute_statistics(members)
    warning_days = int(current_app.config.get("CARD_EXPIRY_WARNING_DAYS") or 30)
    return jsonify(
        {
            "members": stats.to_dict(),
            "approval_funnel": compute_approval_funnel(stats),
            "events": summarize_events(query_events(s).all()),
            "disciplinary": summarize_cases(_visible_cases(s, user)),
            "cards": card_summary(query_cards(s, user).all(), warning_days=warning_days),
            "recent_members": [
                {"membership_id": m.membership_id, "full_name": m.full_name, "status": m.status, "province": m.province}
                for m in sort_most_recent_first(members)[:RECENT_ACTIVITY_LIMIT]
            ],
        }
    )


@bp.get("/notifications")
@require_login
def notifications():
    s = db_session()
    user = current_user()
    # Members without register access get no member-derived alerts.
    members = query_members(s, user).all() if user_has_any_permission(user, *VIEW_MEMBER_PERMISSIONS) else []
    stats = compute_statistics(members)
    items = derive_notifications(stats, members, _visible_cases(s, user), user)
    return jsonify({"items": [n.to_dict() for n in items]})


def _geo_members(s, user):
    filters = {k: request.args.get(k) for k in ("province", "district", "status")}
    return query_members(s, user, filters).all()


@bp.get("/geo/members")
@require_permission(*VIEW_MEMBER_PERMISSIONS)
def geo_members():
    s = db_session()
    members = _geo_members(s, current_user())
    points = map_points(members)
    province = (request.args.get("province") or "").strip()
    return jsonify(
        {
            "points": [p.to_dict() for p in points],
            "total": len(members),
            "with_coordinates": len(points),
            "bounds": province_bounds(members, province) if province else None,
        }
    )


@bp.get("/geo/provinces")
@require_permission(*VIEW_MEMBER_PERMISSIONS)
def geo_provinces():
    s = db_session()
    members = _geo_members(s, current_user())
    return jsonify({"clusters": [c.to_dict() for c in province_clusters(members)]})
