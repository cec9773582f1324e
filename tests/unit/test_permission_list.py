"""Unit tests for converting permission trees into permission lists."""

from __future__ import annotations

from typing import Any

import pytest

from src.auth.access import AccessRestriction
from src.auth.access_control import AccessControl
from src.auth.permission_list import (
    OperationPermission,
    PermissionRestrictionError,
    WholePermission,
    is_restricted,
    parse_permission_key,
    to_permission_list,
    validate_restriction,
)

ADMIN = AccessControl(grants="admin")
EMPTY = AccessControl()
ROOT = AccessControl(grants="root")


class TestParsePermissionKey:
    def test_whole_permission(self) -> None:
        key = parse_permission_key("applications:self")
        assert key == WholePermission("applications")
        assert key.form_key == "applications:self"

    def test_operation_permission(self) -> None:
        key = parse_permission_key("read")
        assert key == OperationPermission("read")
        assert key.form_key == "read"


class TestInvalidInput:
    @pytest.mark.parametrize("tree", [None, ["foo.bar"], "foo.bar"])
    def test_rejects_non_objects(self, tree: Any) -> None:
        with pytest.raises(TypeError):
            to_permission_list(tree, ROOT, EMPTY)

    def test_rejects_unexpected_leaf(self) -> None:
        with pytest.raises(TypeError, match="event.visible"):
            to_permission_list({"event": {"visible": "yes"}}, ROOT, EMPTY)


class TestBooleanPermissions:
    def test_single(self) -> None:
        assert to_permission_list({"admin": True}, ROOT, EMPTY) == "admin"
        assert to_permission_list({"event": {"visible": True}}, ROOT, EMPTY) == "event.visible"

    def test_false_is_omitted(self) -> None:
        assert to_permission_list({"event": {"visible": False}}, ROOT, EMPTY) is None

    def test_independent_permissions(self) -> None:
        tree = {"event": {"applications": True, "visible": False}}
        assert to_permission_list(tree, ROOT, EMPTY) == "event.applications"

    def test_multiple(self) -> None:
        tree = {"event": {"applications": True, "visible": True}}
        assert to_permission_list(tree, ROOT, EMPTY) == "event.applications,event.visible"

        tree = {"event": {"visible": True}, "test": {"boolean": True}}
        assert to_permission_list(tree, ROOT, EMPTY) == "event.visible,test.boolean"

        tree = {"event": {"visible": False}, "test": {"boolean": False}}
        assert to_permission_list(tree, ROOT, EMPTY) is None

    def test_empty_tree(self) -> None:
        assert to_permission_list({}, ROOT, EMPTY) is None


class TestCrudPermissions:
    def test_no_operations(self) -> None:
        tree = {"event": {"applications": {"read": False}}}
        assert to_permission_list(tree, ROOT, EMPTY) is None

        tree = {
            "event": {
                "applications": {"create": False, "read": False, "update": False, "delete": False}
            }
        }
        assert to_permission_list(tree, ROOT, EMPTY) is None

    def test_subset_of_operations(self) -> None:
        tree = {"event": {"applications": {"read": True}}}
        assert to_permission_list(tree, ROOT, EMPTY) == "event.applications:read"

        tree = {"event": {"applications": {"read": True, "update": True}}}
        assert (
            to_permission_list(tree, ROOT, EMPTY)
            == "event.applications:read,event.applications:update"
        )

        tree = {
            "event": {
                "applications": {"create": True, "read": False, "update": False, "delete": True}
            }
        }
        assert (
            to_permission_list(tree, ROOT, EMPTY)
            == "event.applications:create,event.applications:delete"
        )

    def test_all_operations_collapse(self) -> None:
        tree = {
            "event": {
                "applications": {"create": True, "read": True, "update": True, "delete": True}
            }
        }
        assert to_permission_list(tree, ROOT, EMPTY) == "event.applications"

    def test_whole_permission_key(self) -> None:
        tree = {"event": {"applications:self": True, "vendors": {"read": True}}}
        assert to_permission_list(tree, ROOT, EMPTY) == "event.applications,event.vendors:read"


class TestRestrictions:
    def test_root_may_assign_restricted_permission(self) -> None:
        tree = {"organisation": {"impersonation": True}}
        assert to_permission_list(tree, ROOT, EMPTY) == "organisation.impersonation"

    def test_already_granted_permission_is_accepted(self) -> None:
        existing = AccessControl(grants="organisation.impersonation")
        tree = {"organisation": {"impersonation": True}}
        assert to_permission_list(tree, ADMIN, existing) == "organisation.impersonation"

    def test_non_root_cannot_assign_restricted_permission(self) -> None:
        tree = {"organisation": {"impersonation": True}}
        with pytest.raises(
            PermissionRestrictionError,
            match='You are not able to assign the "organisation.impersonation" permission',
        ):
            to_permission_list(tree, ADMIN, EMPTY)

    def test_operation_restrictions(self) -> None:
        existing = AccessControl(grants="system.logs:delete")

        assert to_permission_list({"system": {"logs": {"delete": True}}}, ROOT, EMPTY) == (
            "system.logs:delete"
        )
        assert to_permission_list({"system": {"logs": {"read": True}}}, ROOT, EMPTY) == (
            "system.logs:read"
        )
        assert to_permission_list({"system": {"logs": {"read": True}}}, ADMIN, EMPTY) == (
            "system.logs:read"
        )
        assert to_permission_list({"system": {"logs": {"delete": True}}}, ADMIN, existing) == (
            "system.logs:delete"
        )

        with pytest.raises(PermissionRestrictionError, match="system.logs:delete"):
            to_permission_list({"system": {"logs": {"delete": True}}}, ADMIN, EMPTY)

    def test_whole_crud_permission_checks_operation_restrictions(self) -> None:
        existing = AccessControl(grants="system.logs:delete")

        assert to_permission_list({"system": {"logs": True}}, ROOT, EMPTY) == "system.logs"
        assert to_permission_list({"system": {"logs": True}}, ADMIN, existing) == "system.logs"

        with pytest.raises(PermissionRestrictionError):
            to_permission_list({"system": {"logs": True}}, ADMIN, EMPTY)

    def test_namespace_grant_cannot_bypass_restrictions(self) -> None:
        with pytest.raises(PermissionRestrictionError):
            to_permission_list({"organisation": True}, ADMIN, EMPTY)

    def test_group_grant_cannot_bypass_restrictions(self) -> None:
        with pytest.raises(PermissionRestrictionError):
            to_permission_list({"admin": True}, ADMIN, EMPTY)

        assert to_permission_list({"admin": True}, ADMIN, ADMIN) == "admin"

    def test_root_itself_is_restricted(self) -> None:
        with pytest.raises(PermissionRestrictionError, match='"root"'):
            to_permission_list({"root": True}, ADMIN, EMPTY)


class TestValidateRestriction:
    def test_unrestricted_caller(self) -> None:
        validate_restriction("system.internals", None, AccessRestriction.ROOT, ROOT, EMPTY)

    def test_restricted_caller(self) -> None:
        with pytest.raises(PermissionRestrictionError):
            validate_restriction("system.internals", None, AccessRestriction.ROOT, ADMIN, EMPTY)

    def test_is_restricted(self) -> None:
        assert is_restricted(AccessRestriction.ROOT, ADMIN)
        assert not is_restricted(AccessRestriction.ROOT, ROOT)
