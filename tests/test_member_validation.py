from datetime import date, datetime
from types import SimpleNamespace

import pytest

from app.pmms.modules.members.service import (
    NEXT_STAGE,
    BulkResult,
    approval_level,
    filter_members,
    sort_most_recent_first,
)
from app.pmms.modules.members.utils import (
    age_on,
    generate_membership_id,
    is_valid_nrc,
    is_valid_phone,
    normalize_member_payload,
    validate_member_payload,
)

TODAY = date(2024, 6, 15)


def _valid(**overrides):
    data = {
        "full_name": "Chanda Mwale",
        "nrc_number": "234567/10/1",
        "date_of_birth": "1990-01-01",
        "phone": "0971234567",
        "residential_address": "House 4, Chelston",
        "province": "Lusaka",
        "district": "Lusaka",
        "constituency": "Munali",
        "ward": "Chelston",
        "branch": "Chelston East",
        "section": "Section 3",
    }
    data.update(overrides)
    return data


def test_valid_record_has_no_errors():
    assert validate_member_payload(_valid(), today=TODAY) == {}


@pytest.mark.parametrize("nrc", ["123456/78/1", "000000/00/0"])
def test_nrc_accepts(nrc):
    assert is_valid_nrc(nrc)


@pytest.mark.parametrize("nrc", ["12345/78/1", "123456/7/1", "123456-78-1", "123456/78/12", "", None])
def test_nrc_rejects(nrc):
    assert not is_valid_nrc(nrc)


@pytest.mark.parametrize("phone", ["+260971234567", "0971234567"])
def test_phone_accepts(phone):
    assert is_valid_phone(phone)


@pytest.mark.parametrize("phone", ["+26097123456", "097123456", "+2609712345678", "097-123-4567", ""])
def test_phone_rejects(phone):
    assert not is_valid_phone(phone)


def test_age_is_birthday_aware():
    assert age_on(date(2006, 6, 15), TODAY) == 18
    assert age_on(date(2006, 6, 16), TODAY) == 17
    assert age_on(date(2004, 2, 29), date(2022, 2, 28)) == 17


def test_under_eighteen_rejected_on_the_day_before_birthday():
    errors = validate_member_payload(_valid(date_of_birth="2006-06-16"), today=TODAY)
    assert "date_of_birth" in errors
    assert validate_member_payload(_valid(date_of_birth="2006-06-15"), today=TODAY) == {}


def test_unparseable_date_of_birth():
    errors = validate_member_payload(_valid(date_of_birth="15/06/1990"), today=TODAY)
    assert errors["date_of_birth"].startswith("Date of birth must be a date")


def test_every_jurisdiction_level_required():
    errors = validate_member_payload(_valid(ward="", section="  "), today=TODAY)
    assert set(errors) == {"ward", "section"}


def test_optional_fields_checked_when_present():
    errors = validate_member_payload(
        _valid(email="not-an-email", gender="Unknown", membership_level="Gold", latitude="95", longitude="abc"),
        today=TODAY,
    )
    assert set(errors) == {"email", "gender", "membership_level", "latitude", "longitude"}


def test_missing_required_fields():
    errors = validate_member_payload({}, today=TODAY)
    for key in ("full_name", "nrc_number", "date_of_birth", "phone", "residential_address", "province"):
        assert key in errors


def test_normalize_accepts_nested_jurisdiction_and_drops_status():
    payload = {
        "full_name": "  Chanda Mwale ",
        "status": "Approved",
        "jurisdiction": {"province": "Southern", "district": "Choma"},
        "province": "Lusaka",
        "skills": "Organising, Public speaking, ",
    }
    data = normalize_member_payload(payload)
    assert data["full_name"] == "Chanda Mwale"
    assert data["province"] == "Southern"
    assert data["district"] == "Choma"
    assert "status" not in data
    assert data["skills"] == ["Organising", "Public speaking"]


def test_membership_id_format():
    assert generate_membership_id("UPND", 1700000000123) == "UPND1700000000123"
    assert generate_membership_id().startswith("UPND")


def test_ladder_and_approval_levels():
    assert NEXT_STAGE["Pending Section Review"] == "Pending Branch Review"
    assert NEXT_STAGE["Pending Provincial Review"] == "Approved"
    assert "Approved" not in NEXT_STAGE
    assert approval_level("Pending Ward Review") == "Ward Level"
    assert approval_level("Approved") == "Final Review"


def _m(name, mid, nrc, status, reg):
    return SimpleNamespace(full_name=name, membership_id=mid, nrc_number=nrc, status=status, registration_date=reg)


def test_filter_members_search_and_status():
    a = _m("Mwila Banda", "UPND1", "111111/11/1", "Pending Section Review", datetime(2024, 1, 1))
    b = _m("Joseph Phiri", "UPND2", "222222/22/2", "Approved", datetime(2024, 3, 1))
    c = _m("Grace Banda", "UPND3", "333333/33/3", "Pending Ward Review", datetime(2024, 2, 1))
    members = [a, b, c]

    assert filter_members(members) == members
    assert filter_members(members, search="BANDA") == [a, c]
    assert filter_members(members, search="upnd2") == [b]
    assert filter_members(members, search="333333") == [c]
    assert filter_members(members, status="pending") == [a, c]
    assert filter_members(members, status="Approved") == [b]
    assert filter_members(members, search="banda", status="Pending Ward Review") == [c]
    assert sort_most_recent_first(members) == [b, c, a]


def test_bulk_result_counts():
    r = BulkResult(succeeded=["UPND1"], failed=[{"id": "x", "error": "nope"}])
    d = r.to_dict()
    assert d["succeeded_count"] == 1
    assert d["failed_count"] == 1
