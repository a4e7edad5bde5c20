from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.pmms.db import db_session
from app.pmms.modules.membership_cards.service import (
    expire_overdue,
    expiry_status,
    get_visible_card,
    issue_card,
    query_cards,
    renew_card,
    revoke_card,
    send_renewal_reminder,
)
from app.pmms.rbac import require_permission
from app.pmms.utils import current_user, paginate, pagination_args, request_payload

bp = Blueprint("cards", __name__)


def _validity_days() -> int:
    return int(current_app.config.get("CARD_VALIDITY_DAYS") or 365)


def _warning_days() -> int:
    return int(current_app.config.get("CARD_EXPIRY_WARNING_DAYS") or 30)


def _card_json(card) -> dict:
    d = card.to_dict()
    d["expiry_status"] = expiry_status(card, warning_days=_warning_days())
    return d


@bp.get("/cards")
@require_permission("approve_members")
def cards_list():
    s = db_session()
    filters = {k: request.args.get(k) for k in ("status", "card_type", "expiry", "member_id")}
    page, per_page = pagination_args()
    q = query_cards(s, current_user(), filters, warning_days=_warning_days())
    items, total = paginate(q, page, per_page)
    return jsonify({"items": [_card_json(c) for c in items], "total": total, "page": page, "per_page": per_page})


@bp.get("/cards/<int:card_id>")
@require_permission("approve_members")
def cards_detail(card_id: int):
    s = db_session()
    return jsonify(_card_json(get_visible_card(s, current_user(), card_id)))


@bp.post("/cards")
@require_permission("approve_members")
def cards_issue():
    s = db_session()
    card = issue_card(s, request_payload(), current_user(), validity_days=_validity_days())
    s.commit()
    return jsonify(_card_json(card)), 201


@bp.post("/cards/<int:card_id>/renew")
@require_permission("approve_members")
def cards_renew(card_id: int):
    s = db_session()
    user = current_user()
    card = get_visible_card(s, user, card_id)
    renew_card(s, card, user, validity_days=_validity_days())
    s.commit()
    return jsonify(_card_json(card))


@bp.post("/cards/<int:card_id>/revoke")
@require_permission("approve_members")
def cards_revoke(card_id: int):
    s = db_session()
    user = current_user()
    card = get_visible_card(s, user, card_id)
    revoke_card(s, card, user, reason=request_payload().get("reason"))
    s.commit()
    return jsonify(_card_json(card))


@bp.post("/cards/<int:card_id>/reminder")
@require_permission("approve_members")
def cards_reminder(card_id: int):
    s = db_session()
    user = current_user()
    card = get_visible_card(s, user, card_id)
    send_renewal_reminder(s, card, user)
    s.commit()
    return jsonify(_card_json(card))


@bp.post("/cards/expire-overdue")
@require_permission("system_settings")
def cards_expire_overdue():
    s = db_session()
    count = expire_overdue(s, actor=current_user())
    s.commit()
    return jsonify({"expired": count})
