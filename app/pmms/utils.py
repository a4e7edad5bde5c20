from __future__ import annotations

from datetime import date, datetime
from typing import Any

from flask import g, request


def clean_str(value: Any) -> str | None:
    """Strip strings; empty strings become None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_date(value: Any) -> date | None:
    """Parse YYYY-MM-DD. Raises ValueError for garbage so validators can report it."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    return date.fromisoformat(s[:10])


def parse_int(value: Any, default: int | None = None) -> int | None:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


MAX_DB_ID = 2**63 - 1


def parse_db_id(value: Any) -> int | None:
    """Primary-key reference as int; None unless it is an ASCII digit string or int within BIGINT range."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        n = value
    else:
        s = str(value or "").strip()
        if not (s.isascii() and s.isdigit()):
            return None
        n = int(s)
    if n < 1 or n > MAX_DB_ID:
        return None
    return n


def parse_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def isoformat(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def request_payload() -> dict[str, Any]:
    """JSON body if present, else form fields (multi-value fields collapsed)."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return {k: v for k, v in request.form.items()}


def pagination_args(default_per_page: int = 50, max_per_page: int = 500) -> tuple[int, int]:
    page = max(parse_int(request.args.get("page"), 1) or 1, 1)
    per_page = parse_int(request.args.get("per_page"), default_per_page) or default_per_page
    return page, min(max(per_page, 1), max_per_page)


def paginate(query, page: int, per_page: int) -> tuple[list, int]:
    total = query.order_by(None).count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    return items, total


def current_user():
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u
