"""Unit tests for access lists and the permission registry."""

from __future__ import annotations

import pytest

from src.auth.access import (
    PERMISSIONS,
    AccessRestriction,
    RestrictionRule,
    UnknownPermissionError,
    get_descriptor,
    restrictions_for,
    split_permission,
)
from src.auth.access_list import AccessList, AccessScope, Grant


class TestAccessList:
    def test_empty(self) -> None:
        access_list = AccessList()
        assert "foo" not in access_list
        assert access_list.query("foo") is None

    def test_comma_separated_grant(self) -> None:
        access_list = AccessList("foo,bar.baz")
        assert "foo" in access_list
        assert "bar.baz" in access_list
        assert "bar" not in access_list

    def test_global_result(self) -> None:
        result = AccessList("foo").query("foo")
        assert result is not None
        assert result.global_
        assert not result.expanded
        assert result.scope is None

    def test_expansions_are_transitive(self) -> None:
        expansions = {"a": ["a", "b"], "b": ["c"], "c": ["a"]}
        access_list = AccessList("a", expansions=expansions)

        for permission in ("a", "b", "c"):
            assert permission in access_list

        a = access_list.query("a")
        c = access_list.query("c")
        assert a is not None and not a.expanded
        assert c is not None and c.expanded

    def test_direct_grant_clears_expanded_flag(self) -> None:
        access_list = AccessList(["group", "member"], expansions={"group": ["member"]})
        result = access_list.query("member")
        assert result is not None
        assert not result.expanded

    def test_scoped_query(self) -> None:
        access_list = AccessList([Grant("foo", event="2024", team="crew")])

        assert access_list.query("foo") is not None
        match = access_list.query("foo", AccessScope(event="2024", team="crew"))
        assert match is not None
        assert not match.global_
        assert match.scope == AccessScope(event="2024", team="crew")

        assert access_list.query("foo", AccessScope(event="2025", team="crew")) is None
        assert access_list.query("foo", AccessScope(event="2024", team="hosts")) is None

    def test_wildcard_scope(self) -> None:
        access_list = AccessList([Grant("foo", event="*", team="crew")])
        assert access_list.query("foo", AccessScope(event="2025", team="crew")) is not None
        assert access_list.query("foo", AccessScope(event="2025", team="hosts")) is None

    def test_scoped_query_falls_back_to_global(self) -> None:
        access_list = AccessList([Grant("foo", event="2024"), Grant("foo")])
        result = access_list.query("foo", AccessScope(event="2025"))
        assert result is not None
        assert result.global_
        assert result.scope is None


class TestRegistry:
    def test_get_descriptor(self) -> None:
        assert get_descriptor("event.visible").type == "boolean"
        assert get_descriptor("event.applications").type == "crud"

    def test_unknown_permission(self) -> None:
        with pytest.raises(UnknownPermissionError, match="unicorn"):
            get_descriptor("unicorn")

    def test_split_permission(self) -> None:
        assert split_permission("foo.bar:read") == ("foo.bar", "read")
        assert split_permission("foo.bar") == ("foo.bar", None)

    def test_hidden_operations(self) -> None:
        descriptor = PERMISSIONS["system.logs"]
        assert descriptor.is_hidden("create")
        assert not descriptor.is_hidden("delete")
        assert not descriptor.is_hidden()
        assert PERMISSIONS["test.crud"].is_hidden("read")


class TestRestrictionsFor:
    def test_restricted_permission(self) -> None:
        assert restrictions_for("organisation.impersonation") == (
            RestrictionRule("organisation.impersonation", None, AccessRestriction.ROOT),
        )

    def test_unrestricted_permission(self) -> None:
        assert restrictions_for("event.visible") == ()

    def test_includes_descendants(self) -> None:
        rules = restrictions_for("organisation")
        assert RestrictionRule("organisation.impersonation", None, AccessRestriction.ROOT) in rules

    def test_includes_ancestors(self) -> None:
        rules = restrictions_for("organisation.impersonation.extra")
        assert [r.permission for r in rules] == ["organisation.impersonation"]

    def test_prefix_matching_respects_segments(self) -> None:
        assert restrictions_for("system.log") == ()

    def test_operation_specific_rules(self) -> None:
        delete_rule = RestrictionRule("system.logs", "delete", AccessRestriction.ROOT)
        assert restrictions_for("system.logs") == (delete_rule,)
        assert restrictions_for("system.logs", "delete") == (delete_rule,)
        assert restrictions_for("system.logs", "read") == ()

    def test_groups_are_expanded(self) -> None:
        names = {rule.permission for rule in restrictions_for("admin")}
        assert names == {"organisation.impersonation", "system.internals", "system.logs"}

        root_names = {rule.permission for rule in restrictions_for("root")}
        assert "root" in root_names
        assert "system.internals" in root_names

    def test_cached(self) -> None:
        assert restrictions_for("admin") is restrictions_for("admin")
