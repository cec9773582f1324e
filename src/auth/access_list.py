"""Access lists: the set of permissions captured by a sequence of grants.

Access lists are used to track both positive grants and revocations. Group
names (e.g. "admin") are expanded when expansions are given.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence, Union

ANY_EVENT = "*"
ANY_TEAM = "*"


@dataclass(frozen=True)
class Grant:
    """A comma-separated list of permissions, optionally scoped to an event and/or team."""

    permission: str
    event: str | None = None
    team: str | None = None


GrantInput = Union[str, Grant, Sequence[Union[str, Grant]], None]


@dataclass(frozen=True)
class AccessScope:
    """Event and/or team an access query is scoped to."""

    event: str | None = None
    team: str | None = None

    def __bool__(self) -> bool:
        return bool(self.event or self.team)


@dataclass
class _Access:
    expanded: bool
    global_: bool
    scopes: list[AccessScope] = field(default_factory=list)


@dataclass(frozen=True)
class AccessListResult:
    """Result of a query against an access list."""

    expanded: bool  # included because of an expanded permission group
    global_: bool  # applies regardless of event and team
    scope: AccessScope | None = None  # the scoped entry that matched, if any


def normalize_grants(grants: GrantInput) -> list[Grant]:
    """Turn the accepted grant shapes into a list of Grant objects."""
    if not grants:
        return []
    if isinstance(grants, (str, Grant)):
        grants = [grants]
    return [Grant(permission=g) if isinstance(g, str) else g for g in grants]


class AccessList:
    """Queryable set of permissions built from a sequence of grants."""

    def __init__(
        self,
        grants: GrantInput = None,
        expansions: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        self._access: dict[str, _Access] = {}
        for grant in normalize_grants(grants):
            self._add_grant(grant, expansions or {})

    def _add_grant(self, grant: Grant, expansions: Mapping[str, Iterable[str]]) -> None:
        pending = [(False, p) for p in grant.permission.split(",") if p]
        seen: set[str] = set()
        is_global = not grant.event and not grant.team

        # `pending` grows while iterating so that expansions are applied transitively
        for expanded, permission in pending:
            if permission in seen:
                continue
            seen.add(permission)

            for expanded_permission in expansions.get(permission, ()):
                pending.append((True, expanded_permission))

            access = self._access.setdefault(permission, _Access(expanded, is_global))
            if access.expanded and not expanded:
                access.expanded = False

            if is_global:
                access.global_ = True
                continue

            access.scopes.append(AccessScope(event=grant.event, team=grant.team))

    def __contains__(self, permission: str) -> bool:
        return permission in self._access

    def query(self, permission: str, scope: AccessScope | None = None) -> AccessListResult | None:
        """Query whether `permission` is included, optionally limited to `scope`.

        This is an O(k) operation, where k is the number of scoped grants that
        were issued for the given `permission`.
        """
        access = self._access.get(permission)
        if access is None:
            return None

        if not scope:
            return AccessListResult(expanded=access.expanded, global_=access.global_)

        # A grant that is scoped to an event only applies to all of its teams, and vice versa
        for access_scope in access.scopes:
            if scope.event and scope.event != ANY_EVENT and access_scope.event:
                if access_scope.event not in (scope.event, ANY_EVENT):
                    continue

            if scope.team and scope.team != ANY_TEAM and access_scope.team:
                if access_scope.team not in (scope.team, ANY_TEAM):
                    continue

            return AccessListResult(
                expanded=access.expanded, global_=access.global_, scope=access_scope
            )

        if access.global_:
            return AccessListResult(expanded=access.expanded, global_=True)

        return None
