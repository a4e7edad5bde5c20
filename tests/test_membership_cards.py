from datetime import date, timedelta
from types import SimpleNamespace

from app.pmms.db import session_scope
from app.pmms.modules.membership_cards.models import MembershipCard
from app.pmms.modules.membership_cards.service import card_summary, expire_overdue, expiry_status, generate_qr_code

TODAY = date(2024, 6, 15)


def test_expiry_status_boundaries():
    assert expiry_status(SimpleNamespace(expiry_date=TODAY - timedelta(days=1)), TODAY) == "expired"
    assert expiry_status(SimpleNamespace(expiry_date=TODAY), TODAY) == "expiring"
    assert expiry_status(SimpleNamespace(expiry_date=TODAY + timedelta(days=30)), TODAY) == "expiring"
    assert expiry_status(SimpleNamespace(expiry_date=TODAY + timedelta(days=31)), TODAY) == "active"


def test_card_summary():
    cards = [
        SimpleNamespace(status="Active", expiry_date=TODAY + timedelta(days=100)),
        SimpleNamespace(status="Active", expiry_date=TODAY + timedelta(days=5)),
        SimpleNamespace(status="Expired", expiry_date=TODAY - timedelta(days=5)),
        SimpleNamespace(status="Revoked", expiry_date=TODAY + timedelta(days=100)),
    ]
    assert card_summary(cards, TODAY) == {"total": 4, "active": 1, "expiring": 1, "expired": 1, "revoked": 1}


def test_qr_codes_are_unique_tokens():
    a, b = generate_qr_code(), generate_qr_code()
    assert a.startswith("UPND-")
    assert a != b


def test_issue_only_to_approved_members(client, login, make_member):
    pending_id, _ = make_member()
    approved_id, approved_mid = make_member(nrc_number="222222/22/2", status="Approved")
    h = login()

    r = client.post("/api/cards", json={"member_id": pending_id}, headers=h)
    assert r.status_code == 409

    r = client.post("/api/cards", json={"member_id": approved_mid, "card_type": "Premium"}, headers=h)
    assert r.status_code == 201
    card = r.json
    assert card["card_type"] == "Premium"
    assert card["status"] == "Active"
    assert card["expiry_date"] == (date.today() + timedelta(days=365)).isoformat()
    assert card["expiry_status"] == "active"

    r = client.post("/api/cards", json={"member_id": approved_id, "card_type": "Gold"}, headers=h)
    assert r.status_code == 400


def test_renew_revoke_and_reminder(client, login, make_member):
    _, mid = make_member(status="Approved")
    h = login()
    card_id = client.post("/api/cards", json={"member_id": mid}, headers=h).json["id"]

    r = client.post(f"/api/cards/{card_id}/reminder", headers=h)
    assert r.json["renewal_reminder_sent"] is True

    r = client.post(f"/api/cards/{card_id}/renew", headers=h)
    assert r.json["renewal_reminder_sent"] is False
    assert r.json["last_renewed_at"]

    r = client.post(f"/api/cards/{card_id}/revoke", json={"reason": "Expelled"}, headers=h)
    assert r.json["status"] == "Revoked"
    r = client.post(f"/api/cards/{card_id}/renew", headers=h)
    assert r.status_code == 409


def test_expire_overdue_and_filters(app, client, login, make_member):
    member_id, mid = make_member(status="Approved")
    with session_scope(app) as s:
        s.add_all(
            [
                MembershipCard(member_id=member_id, expiry_date=date.today() - timedelta(days=3), qr_code="UPND-old"),
                MembershipCard(member_id=member_id, expiry_date=date.today() + timedelta(days=10), qr_code="UPND-soon"),
                MembershipCard(member_id=member_id, expiry_date=date.today() + timedelta(days=200), qr_code="UPND-new"),
            ]
        )

    login()
    assert [c["qr_code"] for c in client.get("/api/cards?expiry=expiring").json["items"]] == ["UPND-soon"]
    assert [c["qr_code"] for c in client.get("/api/cards?expiry=expired").json["items"]] == ["UPND-old"]
    assert client.get(f"/api/cards?member_id={mid}").json["total"] == 3

    with session_scope(app) as s:
        assert expire_overdue(s) == 1
        assert expire_overdue(s) == 0
        statuses = {c.qr_code: c.status for c in s.query(MembershipCard).all()}
    assert statuses == {"UPND-old": "Expired", "UPND-soon": "Active", "UPND-new": "Active"}


def test_expire_overdue_endpoint_needs_system_settings(client, login):
    h = login("lusaka@upnd.zm")
    assert client.post("/api/cards/expire-overdue", headers=h).status_code == 403
    client.post("/auth/logout")
    h = login()
    r = client.post("/api/cards/expire-overdue", headers=h)
    assert r.json == {"expired": 0}
