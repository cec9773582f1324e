"""Access control for the Volunteer Manager.

Permissions are hierarchical, resource-based and follow CRUD patterns. Someone
granted "event" also has access to "event.visible", unless a more specific
revocation says otherwise. Checks run from the highest specificity upwards, so
the most specific grant or revoke wins, and at equal specificity a revoke
takes precedence over a grant.

There are two scoping axes: grants may apply to a particular event and/or
team, which is how role-based access (e.g. being a Senior in an event's team)
is expressed.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Literal, Mapping

from src.auth.access import (
    CRUD_OPERATIONS,
    PERMISSION_GROUPS,
    AccessOperation,
    get_descriptor,
)
from src.auth.access_list import (
    ANY_EVENT,
    ANY_TEAM,
    AccessList,
    AccessListResult,
    AccessScope,
    Grant,
    GrantInput,
    normalize_grants,
)

logger = logging.getLogger(__name__)

# Single-word alphanumeric sequences separated by periods, optionally followed
# by a CRUD operation (e.g. "foo.bar.baz", "foo.bar:read").
PERMISSION_PATTERN = re.compile(r"^[a-z][\w-]*(?:\.[\w-]+)*(?::(?:create|read|update|delete))?$")

PermissionStatus = Literal[
    "crud-granted",
    "crud-revoked",
    "parent-granted",
    "parent-revoked",
    "self-granted",
    "self-revoked",
    "unset",
]

ANY_SCOPE = AccessScope(event=ANY_EVENT, team=ANY_TEAM)


class AccessDeniedError(Exception):
    """Raised by AccessControl.require() when a permission has not been granted."""

    def __init__(self, permission: str, operation: AccessOperation | None = None) -> None:
        self.permission = f"{permission}:{operation}" if operation else permission
        super().__init__(f'Access to "{self.permission}" has not been granted')


@dataclass(frozen=True)
class AccessResult:
    """Outcome of a query that found the permission on the grant or revoke list."""

    result: Literal["granted", "revoked"]
    expanded: bool  # inherited from a parent permission or a permission group
    crud: bool  # matched an explicit "permission:operation" entry
    global_: bool
    scope: AccessScope | None = None


def _split_list(value: str | Iterable[str] | None) -> set[str]:
    if not value:
        return set()
    if isinstance(value, str):
        return {v for v in value.split(",") if v}
    return set(value)


def _valid_grants(grants: GrantInput) -> list[Grant]:
    """Drop permissions with invalid syntax, keeping the rest of each grant."""
    result: list[Grant] = []
    for grant in normalize_grants(grants):
        valid: list[str] = []
        for permission in grant.permission.split(","):
            if not PERMISSION_PATTERN.match(permission):
                logger.warning("Invalid syntax for the given grant: %r (ignoring)", permission)
                continue
            valid.append(permission)

        if valid:
            result.append(Grant(permission=",".join(valid), event=grant.event, team=grant.team))

    return result


class AccessControl:
    """Evaluates access for one account from its grants, revokes and event/team access."""

    def __init__(
        self,
        grants: GrantInput = None,
        revokes: GrantInput = None,
        events: str | Iterable[str] | None = None,
        teams: str | Iterable[str] | None = None,
    ) -> None:
        self._grants = AccessList(_valid_grants(grants), expansions=PERMISSION_GROUPS)
        self._revokes = AccessList(_valid_grants(revokes), expansions=PERMISSION_GROUPS)
        self._events = _split_list(events)
        self._teams = _split_list(teams)

    @classmethod
    def from_row(cls, row: Mapping[str, Any], roles: GrantInput = None) -> AccessControl:
        """Build from a row with grants/revokes/events/teams columns plus role-derived grants."""
        grants = normalize_grants(row.get("grants")) + normalize_grants(roles)
        return cls(
            grants=grants,
            revokes=row.get("revokes"),
            events=row.get("events"),
            teams=row.get("teams"),
        )

    # ── Public API ───────────────────────────────────────────

    def can(
        self,
        permission: str,
        operation: AccessOperation | None = None,
        scope: AccessScope | None = None,
    ) -> bool:
        """Whether `permission` (with `operation` for CRUD permissions) has been granted."""
        result, _ = self._resolve(permission, operation, scope)
        return result is not None and result.result == "granted"

    def require(
        self,
        permission: str,
        operation: AccessOperation | None = None,
        scope: AccessScope | None = None,
    ) -> None:
        """Raise AccessDeniedError unless `permission` has been granted."""
        if not self.can(permission, operation, scope):
            raise AccessDeniedError(permission, operation)

    def query(
        self,
        permission: str,
        operation: AccessOperation | None = None,
        scope: AccessScope | None = None,
    ) -> AccessResult | None:
        """Full information on why `permission` is granted or revoked, or None when unset."""
        result, _ = self._resolve(permission, operation, scope)
        return result

    def get_status(
        self,
        permission: str,
        operation: AccessOperation | None = None,
        scope: AccessScope | None = None,
    ) -> PermissionStatus:
        result, is_parent = self._resolve(permission, operation, scope)
        if result is None:
            return "unset"
        if result.crud:
            return "crud-granted" if result.result == "granted" else "crud-revoked"
        if is_parent:
            return "parent-granted" if result.result == "granted" else "parent-revoked"
        return "self-granted" if result.result == "granted" else "self-revoked"

    # ── Internals ────────────────────────────────────────────

    def _resolve(
        self,
        permission: str,
        operation: AccessOperation | None,
        scope: AccessScope | None,
    ) -> tuple[AccessResult | None, bool]:
        if ":" in permission or not PERMISSION_PATTERN.match(permission):
            raise ValueError(f'Invalid syntax for the given permission: "{permission}"')

        descriptor = get_descriptor(permission)
        if descriptor.type == "crud":
            if operation not in CRUD_OPERATIONS:
                raise ValueError(f'Invalid operation given for a CRUD permission: "{operation}"')
        elif operation is not None:
            raise ValueError(f'Operations cannot be given for boolean permission "{permission}"')

        if descriptor.require_event and not (scope and scope.event):
            raise ValueError(f'Event is required when checking "{permission}" access')
        if descriptor.require_team and not (scope and scope.team):
            raise ValueError(f'Team is required when checking "{permission}" access')

        if operation is not None:
            result = self._match(f"{permission}:{operation}", scope, crud=True, parent=False)
            if result is not None:
                return result, False

        path = permission.split(".")
        while path:
            name = ".".join(path)
            is_parent = name != permission

            result = self._match(name, scope, crud=False, parent=is_parent)
            if result is not None:
                return result, is_parent

            path.pop()

        return None, False

    def _match(
        self, name: str, scope: AccessScope | None, *, crud: bool, parent: bool
    ) -> AccessResult | None:
        revoked = self._revokes.query(name, scope)
        if revoked is not None:
            return self._to_result("revoked", revoked, crud=crud, parent=parent)

        granted = self._grants.query(name, scope)
        if granted is not None and self._is_grant_applicable(granted, scope):
            return self._to_result("granted", granted, crud=crud, parent=parent)

        return None

    def _is_grant_applicable(self, granted: AccessListResult, scope: AccessScope | None) -> bool:
        if not scope or granted.scope is not None:
            return True

        # Global grants need event and team access for scoped queries
        if scope.event and scope.event != ANY_EVENT:
            if ANY_EVENT not in self._events and scope.event not in self._events:
                return False

        if scope.team and scope.team != ANY_TEAM:
            if ANY_TEAM not in self._teams and scope.team not in self._teams:
                return False

        return True

    @staticmethod
    def _to_result(
        result: Literal["granted", "revoked"],
        match: AccessListResult,
        *,
        crud: bool,
        parent: bool,
    ) -> AccessResult:
        return AccessResult(
            result=result,
            expanded=match.expanded or parent,
            crud=crud,
            global_=match.global_,
            scope=match.scope,
        )
