from __future__ import annotations

import logging
import secrets
import time
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any

from app.pmms.audit import record_event
from app.pmms.constants import CARD_TYPES, STATUS_APPROVED
from app.pmms.errors import NotFoundError, TransitionError, ValidationError
from app.pmms.jurisdiction import scope_query
from app.pmms.modules.members.service import get_visible_member
from app.pmms.rbac import ensure_permission
from app.pmms.utils import clean_str, parse_db_id

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.pmms.models import User
    from app.pmms.modules.membership_cards.models import MembershipCard

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY_DAYS = 365
DEFAULT_WARNING_DAYS = 30


def generate_qr_code(prefix: str = "UPND") -> str:
    """`UPND-<epoch-ms>-<random hex>`; what the card's QR symbol encodes."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def expiry_status(card: Any, today: date | None = None, warning_days: int = DEFAULT_WARNING_DAYS) -> str:
    """`expired`, `expiring` (within the warning window) or `active`."""
    today = today or date.today()
    if card.expiry_date < today:
        return "expired"
    if (card.expiry_date - today).days <= warning_days:
        return "expiring"
    return "active"


def query_cards(
    s: "Session",
    user: "User | None",
    filters: dict[str, Any] | None = None,
    *,
    today: date | None = None,
    warning_days: int = DEFAULT_WARNING_DAYS,
) -> "Query":
    from app.pmms.modules.members.models import Member
    from app.pmms.modules.membership_cards.models import MembershipCard

    filters = filters or {}
    today = today or date.today()
    q = scope_query(s.query(MembershipCard).join(Member, MembershipCard.member_id == Member.id), user)

    status = clean_str(filters.get("status"))
    if status and status != "all":
        q = q.filter(MembershipCard.status == status)
    card_type = clean_str(filters.get("card_type"))
    if card_type and card_type != "all":
        q = q.filter(MembershipCard.card_type == card_type)

    expiry = clean_str(filters.get("expiry"))
    if expiry == "expiring":
        q = q.filter(
            MembershipCard.status == "Active",
            MembershipCard.expiry_date >= today,
            MembershipCard.expiry_date <= today + timedelta(days=warning_days),
        )
    elif expiry == "expired":
        q = q.filter(MembershipCard.expiry_date < today)

    member_ref = clean_str(filters.get("member_id"))
    if member_ref:
        if member_ref.isascii() and member_ref.isdigit():
            q = q.filter(MembershipCard.member_id == (parse_db_id(member_ref) or 0))
        else:
            q = q.filter(Member.membership_id == member_ref)
    return q.order_by(MembershipCard.expiry_date.asc(), MembershipCard.id.asc())


def get_visible_card(s: "Session", user: "User | None", card_id: Any) -> "MembershipCard":
    from app.pmms.modules.membership_cards.models import MembershipCard

    card = query_cards(s, user).filter(MembershipCard.id == (parse_db_id(card_id) or 0)).one_or_none()
    if card is None:
        raise NotFoundError("Membership card", card_id)
    return card


def issue_card(
    s: "Session",
    payload: dict[str, Any],
    user: "User",
    *,
    validity_days: int = DEFAULT_VALIDITY_DAYS,
    today: date | None = None,
) -> "MembershipCard":
    """Cards are only issued to approved members."""
    from app.pmms.modules.membership_cards.models import MembershipCard

    ensure_permission(user, "approve_members")
    card_type = clean_str(payload.get("card_type")) or "Standard"
    if card_type not in CARD_TYPES:
        raise ValidationError({"card_type": f"Card type must be one of: {', '.join(CARD_TYPES)}"})
    if payload.get("member_id") in (None, ""):
        raise ValidationError({"member_id": "Member is required."})

    member = get_visible_member(s, user, payload.get("member_id"))
    if member.status != STATUS_APPROVED:
        raise TransitionError(f"Member {member.membership_id} is {member.status!r}; cards are issued to approved members only.")

    today = today or date.today()
    qr = generate_qr_code()
    while s.query(MembershipCard.id).filter(MembershipCard.qr_code == qr).first() is not None:
        qr = generate_qr_code()
    card = MembershipCard(
        member=member,
        card_type=card_type,
        issue_date=today,
        expiry_date=today + timedelta(days=validity_days),
        qr_code=qr,
        status="Active",
        renewal_reminder_sent=False,
        created_at=datetime.utcnow(),
    )
    s.add(card)
    s.flush()
    record_event(
        s,
        actor=user,
        action="card.issue",
        entity_type="MembershipCard",
        entity_id=str(card.id),
        metadata={"membership_id": member.membership_id, "card_type": card_type, "expiry_date": card.expiry_date},
    )
    return card


def renew_card(
    s: "Session",
    card: "MembershipCard",
    user: "User",
    *,
    validity_days: int = DEFAULT_VALIDITY_DAYS,
    today: date | None = None,
) -> "MembershipCard":
    ensure_permission(user, "approve_members")
    if card.status == "Revoked":
        raise TransitionError(f"Card {card.id} is revoked; issue a new card instead.")
    today = today or date.today()
    old_expiry = card.expiry_date
    card.expiry_date = today + timedelta(days=validity_days)
    card.status = "Active"
    card.renewal_reminder_sent = False
    card.renewal_reminder_sent_at = None
    card.last_renewed_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="card.renew",
        entity_type="MembershipCard",
        entity_id=str(card.id),
        metadata={"from": old_expiry, "to": card.expiry_date},
    )
    return card


def revoke_card(s: "Session", card: "MembershipCard", user: "User", *, reason: str | None = None) -> "MembershipCard":
    ensure_permission(user, "approve_members")
    if card.status == "Revoked":
        return card
    old = card.status
    card.status = "Revoked"
    record_event(
        s,
        actor=user,
        action="card.revoke",
        entity_type="MembershipCard",
        entity_id=str(card.id),
        reason=clean_str(reason),
        metadata={"from": old},
    )
    return card


def send_renewal_reminder(s: "Session", card: "MembershipCard", user: "User") -> "MembershipCard":
    """Flags the reminder as sent; the message itself goes through the gateway."""
    ensure_permission(user, "approve_members")
    card.renewal_reminder_sent = True
    card.renewal_reminder_sent_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="card.reminder",
        entity_type="MembershipCard",
        entity_id=str(card.id),
    )
    return card


def expire_overdue(s: "Session", today: date | None = None, actor: "User | None" = None) -> int:
    """Mark Active cards past their expiry date as Expired. Returns how many changed."""
    from app.pmms.modules.membership_cards.models import MembershipCard

    today = today or date.today()
    cards = (
        s.query(MembershipCard)
        .filter(MembershipCard.status == "Active", MembershipCard.expiry_date < today)
        .all()
    )
    for card in cards:
        card.status = "Expired"
    if cards:
        s.flush()
        record_event(
            s,
            actor=actor,
            action="card.expire_overdue",
            entity_type="MembershipCard",
            metadata={"count": len(cards), "as_of": today},
        )
        logger.info("Expired %s overdue membership cards", len(cards))
    return len(cards)


def card_summary(cards, today: date | None = None, warning_days: int = DEFAULT_WARNING_DAYS) -> dict[str, int]:
    summary = {"total": 0, "active": 0, "expiring": 0, "expired": 0, "revoked": 0}
    for card in cards:
        summary["total"] += 1
        if card.status == "Revoked":
            summary["revoked"] += 1
            continue
        summary[expiry_status(card, today, warning_days)] += 1
    return summary
