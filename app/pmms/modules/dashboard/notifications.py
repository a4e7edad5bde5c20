from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from app.pmms.constants import STATUS_APPROVED
from app.pmms.modules.dashboard.statistics import Statistics
from app.pmms.rbac import user_has_permission

RECENT_APPROVAL_WINDOW = timedelta(hours=24)
RECENT_REGISTRATION_WINDOW = timedelta(hours=1)


@dataclass(frozen=True)
class NotificationAction:
    label: str
    target: str


@dataclass(frozen=True)
class Notification:
    id: str
    type: str  # info | success | warning | urgent
    title: str
    message: str
    action: NotificationAction | None = None

    def to_dict(self) -> dict:
        d = {"id": self.id, "type": self.type, "title": self.title, "message": self.message, "action": None}
        if self.action:
            d["action"] = {"label": self.action.label, "target": self.action.target}
        return d


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'s' if n > 1 else ''}"


def _within(value: datetime | None, now: datetime, window: timedelta) -> bool:
    return value is not None and now - value <= window


def derive_notifications(
    stats: Statistics,
    members: Iterable[Any],
    cases: Iterable[Any],
    user: Any,
    now: datetime | None = None,
) -> list[Notification]:
    """
    Alerts derived from the current snapshot. Same inputs, same output;
    ids are stable so clients can remember dismissals.

    Registration date stands in for approval time on the "approved" alert;
    members carry no separate approval timestamp.
    """
    now = now or datetime.utcnow()
    members = list(members)
    out: list[Notification] = []

    if stats.pending_applications > 0 and user_has_permission(user, "approve_members"):
        out.append(
            Notification(
                id="pending-approvals",
                type="urgent",
                title="Pending Approvals",
                message=f"{_plural(stats.pending_applications, 'application')} awaiting your review",
                action=NotificationAction("Review Now", "approval"),
            )
        )

    recently_approved = [
        m for m in members if m.status == STATUS_APPROVED and _within(m.registration_date, now, RECENT_APPROVAL_WINDOW)
    ]
    if recently_approved:
        out.append(
            Notification(
                id="approved-members",
                type="success",
                title="New Members Approved",
                message=f"{_plural(len(recently_approved), 'member')} successfully approved today",
            )
        )

    active_cases = sum(1 for c in cases if c.status == "Active")
    if active_cases > 0 and user_has_permission(user, "manage_disciplinary"):
        out.append(
            Notification(
                id="disciplinary-cases",
                type="warning",
                title="Active Disciplinary Cases",
                message=f"{_plural(active_cases, 'case')} require your attention",
                action=NotificationAction("View Cases", "disciplinary"),
            )
        )

    recent = [m for m in members if _within(m.registration_date, now, RECENT_REGISTRATION_WINDOW)]
    if recent:
        out.append(
            Notification(
                id="new-registrations",
                type="info",
                title="New Registrations",
                message=f"{_plural(len(recent), 'new member')} registered in the last hour",
                action=NotificationAction("View Members", "members"),
            )
        )

    return out
