import csv
import io
import json
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from app.pmms.errors import NotFoundError, ValidationError
from app.pmms.modules.reports.exports import build_dataset, export_filename, render, to_csv, to_json

NOW = datetime(2024, 6, 15, 12, 0)


def _m(mid, status, reg, province="Lusaka", lat=None, lng=None):
    return SimpleNamespace(
        membership_id=mid,
        full_name=f"Member {mid}",
        nrc_number="123456/78/1",
        phone="0971234567",
        province=province,
        district="Lusaka",
        constituency="Kabulonga",
        status=status,
        registration_date=reg,
        latitude=lat,
        longitude=lng,
    )


MEMBERS = [
    _m("UPND1", "Approved", datetime(2024, 6, 1), lat=-15.4, lng=28.3),
    _m("UPND2", "Pending Section Review", datetime(2024, 5, 1)),
    _m("UPND3", "Rejected", datetime(2023, 1, 1), province="Southern"),
]


def test_json_export_round_trips_ids_and_statuses():
    ds = build_dataset("membership-overview", MEMBERS, now=NOW)
    doc = json.loads(to_json(ds, exported_at=NOW))
    assert doc["report_id"] == "membership-overview"
    assert doc["total_records"] == 3
    assert doc["exported_at"] == NOW.isoformat()
    assert [(r["membership_id"], r["status"]) for r in doc["data"]] == [
        (m.membership_id, m.status) for m in MEMBERS
    ]


def test_csv_has_header_row_and_one_row_per_member():
    ds = build_dataset("membership-overview", MEMBERS, now=NOW)
    rows = list(csv.reader(io.StringIO(to_csv(ds))))
    assert rows[0][0] == "Membership ID"
    assert rows[0][-1] == "Registration Date"
    assert len(rows) == 4
    assert rows[1][0] == "UPND1"


def test_date_range_filters_registration_date():
    ds = build_dataset("membership-overview", MEMBERS, date_range="last30", now=NOW)
    assert [r["membership_id"] for r in ds.records] == ["UPND1"]
    ds = build_dataset("membership-overview", MEMBERS, date_range="last90", now=NOW)
    assert [r["membership_id"] for r in ds.records] == ["UPND1", "UPND2"]
    with pytest.raises(ValidationError):
        build_dataset("membership-overview", MEMBERS, date_range="lastyear", now=NOW)


def test_other_member_reports():
    assert [r["membership_id"] for r in build_dataset("pending-applications", MEMBERS, now=NOW).records] == ["UPND2"]
    assert [r["membership_id"] for r in build_dataset("geolocation", MEMBERS, now=NOW).records] == ["UPND1"]

    growth = build_dataset("membership-growth", MEMBERS, now=NOW).records
    assert len(growth) == 12
    assert growth[4] == {"month": "May", "registrations": 1}

    dist = build_dataset("provincial-distribution", MEMBERS, now=NOW).rows
    assert dist == [["Lusaka", 2], ["Southern", 1]]


def test_disciplinary_report():
    case = SimpleNamespace(
        case_number="DC-2024-0001",
        member=SimpleNamespace(membership_id="UPND1"),
        member_name="Member UPND1",
        violation_type="Misconduct",
        severity="High",
        status="Active",
        date_reported=date(2024, 6, 1),
        resolution=None,
    )
    ds = build_dataset("disciplinary-overview", cases=[case], now=NOW)
    assert ds.rows == [["DC-2024-0001", "UPND1", "Misconduct", "Active", "2024-06-01", None]]
    assert to_csv(ds).splitlines()[1].endswith(",")


def test_unknown_report_and_format():
    with pytest.raises(NotFoundError):
        build_dataset("nope", MEMBERS, now=NOW)
    ds = build_dataset("membership-overview", MEMBERS, now=NOW)
    with pytest.raises(ValidationError):
        render(ds, "xml")


def test_export_filename():
    assert export_filename("membership-overview", "csv", NOW) == "UPND_membership-overview_2024-06-15.csv"
