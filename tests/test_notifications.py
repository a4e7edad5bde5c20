from datetime import datetime, timedelta
from types import SimpleNamespace

from app.pmms.modules.dashboard.notifications import derive_notifications
from app.pmms.modules.dashboard.statistics import compute_statistics

NOW = datetime(2024, 6, 15, 12, 0)
NATIONAL = SimpleNamespace(role="National Admin", is_active=True)
SECTION = SimpleNamespace(role="Section Admin", is_active=True)


def _m(status, age):
    return SimpleNamespace(status=status, province="Lusaka", registration_date=NOW - age)


def _derive(members, cases=(), user=NATIONAL):
    stats = compute_statistics(members, now=NOW)
    return derive_notifications(stats, members, cases, user, now=NOW)


def test_nothing_to_report():
    assert _derive([_m("Approved", timedelta(days=10))]) == []


def test_pending_approvals_urgent_with_action():
    out = _derive([_m("Pending Section Review", timedelta(days=3))])
    assert len(out) == 1
    n = out[0]
    assert n.id == "pending-approvals"
    assert n.type == "urgent"
    assert n.message == "1 application awaiting your review"
    assert n.to_dict()["action"] == {"label": "Review Now", "target": "approval"}


def test_pending_approvals_pluralised_and_permission_gated():
    members = [_m("Pending Section Review", timedelta(days=3)), _m("Pending Ward Review", timedelta(days=3))]
    assert _derive(members)[0].message == "2 applications awaiting your review"
    assert _derive(members, user=SECTION) == []


def test_recent_approvals_and_registrations():
    members = [_m("Approved", timedelta(minutes=30)), _m("Approved", timedelta(hours=5))]
    ids = {n.id: n for n in _derive(members)}
    assert ids["approved-members"].message == "2 members successfully approved today"
    assert ids["approved-members"].action is None
    assert ids["new-registrations"].message == "1 new member registered in the last hour"


def test_active_cases_warning():
    cases = [SimpleNamespace(status="Active"), SimpleNamespace(status="Resolved")]
    out = _derive([], cases)
    assert [n.id for n in out] == ["disciplinary-cases"]
    assert out[0].message == "1 case require your attention"
    assert _derive([], cases, user=SECTION) == []


def test_idempotent_and_order_stable():
    members = [_m("Pending Branch Review", timedelta(minutes=5)), _m("Approved", timedelta(minutes=5))]
    cases = [SimpleNamespace(status="Active")]
    first = _derive(members, cases)
    assert first == _derive(members, cases)
    assert [n.id for n in first] == ["pending-approvals", "approved-members", "disciplinary-cases", "new-registrations"]
