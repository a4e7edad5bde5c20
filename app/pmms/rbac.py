from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import g, jsonify

from app.pmms.constants import (
    ROLE_BRANCH_ADMIN,
    ROLE_CONSTITUENCY_ADMIN,
    ROLE_DISTRICT_ADMIN,
    ROLE_MEMBER,
    ROLE_NATIONAL_ADMIN,
    ROLE_PROVINCIAL_ADMIN,
    ROLE_SECTION_ADMIN,
    ROLE_WARD_ADMIN,
)
from app.pmms.errors import PermissionDeniedError
from app.pmms.models import User

# Flat per-role table: no inheritance between levels. Each set is explicit.
ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    ROLE_NATIONAL_ADMIN: frozenset({
        "view_all", "approve_all", "manage_users", "generate_reports",
        "export_data", "approve_members", "system_settings", "manage_disciplinary",
        "manage_events",
    }),
    ROLE_PROVINCIAL_ADMIN: frozenset({
        "view_province", "approve_members", "manage_province_users",
        "generate_reports", "export_data", "manage_districts", "manage_branches",
        "manage_officials", "manage_events", "view_performance", "manage_disciplinary",
    }),
    ROLE_DISTRICT_ADMIN: frozenset({
        "view_district", "approve_members", "manage_district_users",
        "generate_reports", "manage_constituencies", "manage_events",
    }),
    ROLE_CONSTITUENCY_ADMIN: frozenset({
        "view_constituency", "approve_members", "manage_constituency_users",
        "generate_reports", "manage_wards", "manage_events",
    }),
    ROLE_WARD_ADMIN: frozenset({
        "view_ward", "approve_members", "manage_ward_users",
        "generate_reports", "manage_branches", "manage_events",
    }),
    ROLE_BRANCH_ADMIN: frozenset({
        "view_branch", "approve_members", "manage_branch_users",
        "generate_reports", "manage_sections", "manage_events",
    }),
    ROLE_SECTION_ADMIN: frozenset({
        "view_section", "review_applications", "generate_reports",
    }),
    ROLE_MEMBER: frozenset({
        "view_profile", "update_profile",
    }),
}


def permissions_for(role: str | None) -> frozenset[str]:
    """Unknown roles get no permissions."""
    if not role:
        return frozenset()
    return ROLE_PERMISSIONS.get(role, frozenset())


def user_has_permission(user: User | None, permission_key: str) -> bool:
    if not user or not user.is_active:
        return False
    return permission_key in permissions_for(user.role)


def user_has_any_permission(user: User | None, *permission_keys: str) -> bool:
    return any(user_has_permission(user, k) for k in permission_keys)


def ensure_permission(user: User | None, *permission_keys: str) -> None:
    """Service-side guard: raise unless the user holds one of the permissions."""
    if not user_has_any_permission(user, *permission_keys):
        raise PermissionDeniedError(" or ".join(permission_keys))


def require_permission(*permission_keys: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Route guard. Passing several keys means any one of them is enough."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated -> 401 so API clients know to log in.
            if not user or not user.is_active:
                return jsonify({"error": "unauthorized", "message": "Login required."}), 401
            # Authenticated but unauthorized -> 403
            if not user_has_any_permission(user, *permission_keys):
                g.missing_permission = " or ".join(permission_keys)
                raise PermissionDeniedError(g.missing_permission)
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def require_login(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        if not user or not user.is_active:
            return jsonify({"error": "unauthorized", "message": "Login required."}), 401
        return fn(*args, **kwargs)

    return wrapped


# Any one of these lets a user browse the member register (scoped by level).
VIEW_MEMBER_PERMISSIONS = (
    "view_all",
    "view_province",
    "view_district",
    "view_constituency",
    "view_ward",
    "view_branch",
    "view_section",
)
