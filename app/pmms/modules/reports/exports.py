"""
Read-only report exports (CSV, JSON, printable HTML).

A report is built in two steps: `build_dataset` turns member/case snapshots
into rows, then one of the renderers serialises the rows. Nothing is stored.
"""
from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from app.pmms.errors import NotFoundError, ValidationError
from app.pmms.modules.dashboard.geo import has_coordinates
from app.pmms.modules.dashboard.statistics import MONTH_LABELS, compute_statistics

EXPORT_FORMATS = ("csv", "json", "html")
DATE_RANGES = {"all": None, "last30": 30, "last90": 90}

MEMBER_HEADERS = (
    "Membership ID",
    "Full Name",
    "NRC Number",
    "Phone",
    "Province",
    "District",
    "Status",
    "Registration Date",
)


@dataclass(frozen=True)
class ReportDefinition:
    report_id: str
    title: str
    headers: tuple[str, ...]
    keys: tuple[str, ...]


REPORTS: dict[str, ReportDefinition] = {
    r.report_id: r
    for r in (
        ReportDefinition(
            "membership-overview",
            "UPND Membership Overview",
            MEMBER_HEADERS,
            ("membership_id", "full_name", "nrc_number", "phone", "province", "district", "status", "registration_date"),
        ),
        ReportDefinition(
            "pending-applications",
            "Pending Applications Report",
            MEMBER_HEADERS,
            ("membership_id", "full_name", "nrc_number", "phone", "province", "district", "status", "registration_date"),
        ),
        ReportDefinition(
            "membership-growth",
            "Membership Growth Analysis",
            ("Month", "Registrations"),
            ("month", "registrations"),
        ),
        ReportDefinition(
            "provincial-distribution",
            "Provincial Distribution",
            ("Province", "Members"),
            ("province", "members"),
        ),
        ReportDefinition(
            "disciplinary-overview",
            "Disciplinary Cases Overview",
            ("Case ID", "Member ID", "Violation Type", "Status", "Date Reported", "Resolution"),
            ("case_number", "membership_id", "violation_type", "status", "date_reported", "resolution"),
        ),
        ReportDefinition(
            "geolocation",
            "Member Geolocation",
            ("Member ID", "Name", "Province", "District", "Constituency", "Status", "Latitude", "Longitude"),
            ("membership_id", "full_name", "province", "district", "constituency", "status", "latitude", "longitude"),
        ),
    )
}


@dataclass
class Dataset:
    report: ReportDefinition
    date_range: str
    records: list[dict[str, Any]] = field(default_factory=list)

    @property
    def rows(self) -> list[list[Any]]:
        return [[r.get(k) for k in self.report.keys] for r in self.records]


def get_report(report_id: str) -> ReportDefinition:
    try:
        return REPORTS[report_id]
    except KeyError:
        raise NotFoundError("Report", report_id)


def _cutoff(date_range: str, now: datetime) -> datetime | None:
    if date_range not in DATE_RANGES:
        raise ValidationError({"date_range": f"Date range must be one of: {', '.join(DATE_RANGES)}"})
    days = DATE_RANGES[date_range]
    return now - timedelta(days=days) if days else None


def _member_record(m: Any) -> dict[str, Any]:
    return {
        "membership_id": m.membership_id,
        "full_name": m.full_name,
        "nrc_number": m.nrc_number,
        "phone": m.phone,
        "province": m.province,
        "district": m.district,
        "constituency": m.constituency,
        "status": m.status,
        "registration_date": m.registration_date.isoformat() if m.registration_date else None,
        "latitude": m.latitude,
        "longitude": m.longitude,
    }


def _case_record(c: Any) -> dict[str, Any]:
    member = getattr(c, "member", None)
    return {
        "case_number": c.case_number,
        "membership_id": member.membership_id if member is not None else None,
        "member_name": c.member_name,
        "violation_type": c.violation_type,
        "severity": c.severity,
        "status": c.status,
        "date_reported": c.date_reported.isoformat() if c.date_reported else None,
        "resolution": c.resolution,
    }


def build_dataset(
    report_id: str,
    members: Iterable[Any] = (),
    cases: Iterable[Any] = (),
    date_range: str = "all",
    now: datetime | None = None,
) -> Dataset:
    """Rows for one report. Members are filtered on registration date, cases on date reported."""
    report = get_report(report_id)
    now = now or datetime.utcnow()
    cutoff = _cutoff(date_range, now)

    members = [m for m in members if cutoff is None or (m.registration_date and m.registration_date >= cutoff)]
    ds = Dataset(report=report, date_range=date_range)

    if report_id == "membership-overview":
        ds.records = [_member_record(m) for m in members]
    elif report_id == "pending-applications":
        ds.records = [_member_record(m) for m in members if "Pending" in (m.status or "")]
    elif report_id == "membership-growth":
        stats = compute_statistics(members, now=now)
        ds.records = [
            {"month": MONTH_LABELS[i], "registrations": n} for i, n in enumerate(stats.monthly_registrations)
        ]
    elif report_id == "provincial-distribution":
        stats = compute_statistics(members, now=now)
        ds.records = [{"province": p, "members": n} for p, n in stats.provincial_distribution]
    elif report_id == "disciplinary-overview":
        cutoff_date = cutoff.date() if cutoff else None
        ds.records = [
            _case_record(c)
            for c in cases
            if cutoff_date is None or (c.date_reported and c.date_reported >= cutoff_date)
        ]
    elif report_id == "geolocation":
        ds.records = [_member_record(m) for m in members if has_coordinates(m)]
    return ds


def to_csv(ds: Dataset) -> str:
    out = io.StringIO()
    w = csv.writer(out, lineterminator="\n")
    w.writerow(ds.report.headers)
    for row in ds.rows:
        w.writerow(["" if v is None else v for v in row])
    return out.getvalue()


def to_json(ds: Dataset, exported_at: datetime | None = None) -> str:
    exported_at = exported_at or datetime.utcnow()
    doc = {
        "report": ds.report.title,
        "report_id": ds.report.report_id,
        "exported_at": exported_at.isoformat(),
        "date_range": ds.date_range,
        "total_records": len(ds.records),
        "data": ds.records,
    }
    return json.dumps(doc, indent=2, default=str)


def to_html(ds: Dataset, exported_at: datetime | None = None) -> str:
    """Printable table; needs an app context for the template loader."""
    from flask import render_template

    return render_template(
        "reports/export.html",
        report=ds.report,
        rows=ds.rows,
        total=len(ds.records),
        date_range=ds.date_range,
        exported_at=exported_at or datetime.utcnow(),
    )


CONTENT_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "json": "application/json",
    "html": "text/html; charset=utf-8",
}


def render(ds: Dataset, fmt: str, exported_at: datetime | None = None) -> str:
    if fmt == "csv":
        return to_csv(ds)
    if fmt == "json":
        return to_json(ds, exported_at)
    if fmt == "html":
        return to_html(ds, exported_at)
    raise ValidationError({"format": f"Format must be one of: {', '.join(EXPORT_FORMATS)}"})


def export_filename(report_id: str, fmt: str, today: datetime | None = None) -> str:
    today = today or datetime.utcnow()
    return f"UPND_{report_id}_{today.date().isoformat()}.{fmt}"
