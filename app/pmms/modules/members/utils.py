"""
Member intake validation and identifier helpers.

Everything here is pure (no session, no request) so the rules can be tested
directly and reused by the public registration form and the admin API.
"""
from __future__ import annotations

import re
import time
from datetime import date
from typing import Any

from app.pmms.constants import GENDERS, MEMBERSHIP_LEVELS
from app.pmms.jurisdiction import JURISDICTION_FIELDS
from app.pmms.utils import clean_str, parse_date, parse_float

NRC_RE = re.compile(r"^\d{6}/\d{2}/\d$")
PHONE_RE = re.compile(r"^(\+260\d{9}|\d{10})$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MINIMUM_AGE = 18

# Fields a payload may carry; anything else is ignored.
PROFILE_FIELDS = (
    "full_name",
    "nrc_number",
    "date_of_birth",
    "gender",
    "phone",
    "email",
    "residential_address",
    "latitude",
    "longitude",
    "education",
    "occupation",
    "skills",
    "membership_level",
    "party_role",
    "party_commitment",
    "notification_preferences",
) + JURISDICTION_FIELDS


def is_valid_nrc(value: str | None) -> bool:
    return bool(value) and bool(NRC_RE.match(value))


def is_valid_phone(value: str | None) -> bool:
    return bool(value) and bool(PHONE_RE.match(value))


def age_on(date_of_birth: date, today: date | None = None) -> int:
    """Whole years completed on `today` (birthday-aware)."""
    today = today or date.today()
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def generate_membership_id(prefix: str = "UPND", now_ms: int | None = None) -> str:
    """`UPND<epoch-ms>`, the format printed on membership cards."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{prefix}{now_ms}"


def normalize_member_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Flatten an intake payload.

    Accepts either flat jurisdiction fields or a nested `jurisdiction` object;
    nested values win. Unknown keys (including `status`) are dropped.
    """
    data = {k: payload.get(k) for k in PROFILE_FIELDS if k in payload}
    nested = payload.get("jurisdiction")
    if isinstance(nested, dict):
        for field in JURISDICTION_FIELDS:
            if field in nested:
                data[field] = nested[field]
    for key, value in list(data.items()):
        if isinstance(value, str):
            data[key] = value.strip()
    if isinstance(data.get("skills"), str):
        data["skills"] = [x.strip() for x in data["skills"].split(",") if x.strip()]
    return data


def validate_member_payload(data: dict[str, Any], today: date | None = None) -> dict[str, str]:
    """
    Validate a complete (normalized) member record. Returns field -> message;
    an empty dict means the record is acceptable.
    """
    errors: dict[str, str] = {}

    if not clean_str(data.get("full_name")):
        errors["full_name"] = "Full name is required."

    nrc = clean_str(data.get("nrc_number"))
    if not nrc:
        errors["nrc_number"] = "NRC number is required."
    elif not is_valid_nrc(nrc):
        errors["nrc_number"] = "NRC must be in the format XXXXXX/XX/X."

    raw_dob = data.get("date_of_birth")
    try:
        dob = parse_date(raw_dob)
    except (TypeError, ValueError):
        dob = None
        errors["date_of_birth"] = "Date of birth must be a date (YYYY-MM-DD)."
    else:
        if dob is None:
            errors["date_of_birth"] = "Date of birth is required."
        elif age_on(dob, today) < MINIMUM_AGE:
            errors["date_of_birth"] = f"Member must be at least {MINIMUM_AGE} years old."

    phone = clean_str(data.get("phone"))
    if not phone:
        errors["phone"] = "Phone number is required."
    elif not is_valid_phone(phone):
        errors["phone"] = "Phone must be +260 followed by 9 digits, or 10 digits."

    for field in JURISDICTION_FIELDS:
        if not clean_str(data.get(field)):
            errors[field] = f"{field.capitalize()} is required."

    if not clean_str(data.get("residential_address")):
        errors["residential_address"] = "Residential address is required."

    email = clean_str(data.get("email"))
    if email and not EMAIL_RE.match(email):
        errors["email"] = "Email address is not valid."

    gender = clean_str(data.get("gender"))
    if gender and gender not in GENDERS:
        errors["gender"] = f"Gender must be one of: {', '.join(GENDERS)}"

    level = clean_str(data.get("membership_level"))
    if level and level not in MEMBERSHIP_LEVELS:
        errors["membership_level"] = f"Membership level must be one of: {', '.join(MEMBERSHIP_LEVELS)}"

    for field, bound in (("latitude", 90.0), ("longitude", 180.0)):
        try:
            value = parse_float(data.get(field))
        except (TypeError, ValueError):
            errors[field] = f"{field.capitalize()} must be a number."
            continue
        if value is not None and not -bound <= value <= bound:
            errors[field] = f"{field.capitalize()} must be between {-bound:g} and {bound:g}."

    skills = data.get("skills")
    if skills is not None and not isinstance(skills, list):
        errors["skills"] = "Skills must be a list."

    return errors
