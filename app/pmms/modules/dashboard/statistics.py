"""
Dashboard aggregates.

All functions here are pure: they take a snapshot of records and return new
values without touching the database or mutating their inputs, so the
results can be recomputed per request.
"""
from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.pmms.constants import (
    MEMBERSHIP_STATUSES,
    PENDING_STATUSES,
    STATUS_APPROVED,
    STATUS_REJECTED,
    STATUS_SUSPENDED,
)

MONTH_LABELS = tuple(calendar.month_abbr[i] for i in range(1, 13))


@dataclass(frozen=True)
class Statistics:
    total_members: int
    pending_applications: int
    approved_members: int
    rejected_applications: int
    suspended_members: int
    provincial_distribution: tuple[tuple[str, int], ...]
    monthly_registrations: tuple[int, ...]  # Jan..Dec of `year`
    status_distribution: tuple[tuple[str, int], ...]  # all statuses, ladder order
    year: int

    def province_counts(self) -> dict[str, int]:
        return dict(self.provincial_distribution)

    def status_counts(self) -> dict[str, int]:
        return dict(self.status_distribution)

    def to_dict(self) -> dict:
        return {
            "total_members": self.total_members,
            "pending_applications": self.pending_applications,
            "approved_members": self.approved_members,
            "rejected_applications": self.rejected_applications,
            "suspended_members": self.suspended_members,
            "provincial_distribution": [
                {"province": p, "count": c} for p, c in self.provincial_distribution
            ],
            "monthly_trends": [
                {"month": MONTH_LABELS[i], "registrations": n} for i, n in enumerate(self.monthly_registrations)
            ],
            "status_distribution": [{"status": s, "count": c} for s, c in self.status_distribution],
            "year": self.year,
        }


def compute_statistics(members: Iterable[Any], now: datetime | None = None) -> Statistics:
    """Single pass over `members`."""
    now = now or datetime.utcnow()
    total = pending = approved = rejected = suspended = 0
    provinces: dict[str, int] = {}
    monthly = [0] * 12
    statuses = dict.fromkeys(MEMBERSHIP_STATUSES, 0)

    for m in members:
        total += 1
        status = m.status or ""
        if "Pending" in status:
            pending += 1
        elif status == STATUS_APPROVED:
            approved += 1
        elif status == STATUS_REJECTED:
            rejected += 1
        elif status == STATUS_SUSPENDED:
            suspended += 1
        if status in statuses:
            statuses[status] += 1

        province = m.province or "Unknown"
        provinces[province] = provinces.get(province, 0) + 1

        reg = m.registration_date
        if reg is not None and reg.year == now.year:
            monthly[reg.month - 1] += 1

    return Statistics(
        total_members=total,
        pending_applications=pending,
        approved_members=approved,
        rejected_applications=rejected,
        suspended_members=suspended,
        provincial_distribution=tuple(sorted(provinces.items(), key=lambda kv: (-kv[1], kv[0]))),
        monthly_registrations=tuple(monthly),
        status_distribution=tuple(statuses.items()),
        year=now.year,
    )


def compute_approval_funnel(stats: Statistics) -> list[dict]:
    """Applications waiting at each review stage, then approved."""
    counts = stats.status_counts()
    stages = PENDING_STATUSES + (STATUS_APPROVED,)
    return [{"stage": stage, "count": counts.get(stage, 0)} for stage in stages]


def summarize_events(events: Iterable[Any]) -> dict[str, int]:
    out = {"total": 0, "active": 0, "planned": 0, "completed": 0}
    for e in events:
        out["total"] += 1
        key = (e.status or "").lower()
        if key in out:
            out[key] += 1
    return out


def summarize_cases(cases: Iterable[Any]) -> dict[str, int]:
    out = {"total": 0, "active": 0, "under_review": 0, "resolved": 0, "appealed": 0}
    for c in cases:
        out["total"] += 1
        key = (c.status or "").lower().replace(" ", "_")
        if key in out:
            out[key] += 1
    return out
