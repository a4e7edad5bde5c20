from types import SimpleNamespace

import pytest

from app.pmms.constants import USER_ROLES
from app.pmms.errors import PermissionDeniedError
from app.pmms.rbac import (
    ROLE_PERMISSIONS,
    ensure_permission,
    permissions_for,
    user_has_any_permission,
    user_has_permission,
)


def _user(role, is_active=True):
    return SimpleNamespace(role=role, is_active=is_active)


def test_every_role_has_an_explicit_permission_set():
    assert set(ROLE_PERMISSIONS) == set(USER_ROLES)
    assert len(ROLE_PERMISSIONS) == 8


def test_unknown_or_missing_role_has_no_permissions():
    assert permissions_for("Emperor") == frozenset()
    assert permissions_for(None) == frozenset()


def test_permissions_are_flat_not_inherited():
    # National Admin does not inherit the section-level review permission
    assert "review_applications" not in permissions_for("National Admin")
    assert "review_applications" in permissions_for("Section Admin")
    assert "approve_members" not in permissions_for("Section Admin")
    assert permissions_for("Member") == frozenset({"view_profile", "update_profile"})


def test_export_data_only_national_and_provincial():
    holders = {role for role, perms in ROLE_PERMISSIONS.items() if "export_data" in perms}
    assert holders == {"National Admin", "Provincial Admin"}


def test_user_has_permission():
    assert user_has_permission(_user("District Admin"), "approve_members")
    assert not user_has_permission(_user("District Admin"), "manage_disciplinary")
    assert not user_has_permission(_user("National Admin", is_active=False), "view_all")
    assert not user_has_permission(None, "view_all")


def test_any_permission_and_service_guard():
    section = _user("Section Admin")
    assert user_has_any_permission(section, "approve_members", "review_applications")
    ensure_permission(section, "approve_members", "review_applications")
    with pytest.raises(PermissionDeniedError) as exc:
        ensure_permission(section, "approve_members")
    assert exc.value.permission == "approve_members"
    assert exc.value.status_code == 403
