"""Permission registry of the Volunteer Manager.

Permissions are hierarchical, each scope separated by a period with the most
significant scope left-most (e.g. `event.applications`). CRUD permissions can
be granted per operation using the `permission:operation` syntax.

Keep the registry grouped by namespace, then alphabetized by permission name.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal, Mapping, NamedTuple

AccessOperation = Literal["create", "read", "update", "delete"]
PermissionType = Literal["boolean", "crud"]

CRUD_OPERATIONS: tuple[AccessOperation, ...] = ("create", "read", "update", "delete")


class AccessRestriction(str, enum.Enum):
    """Eligibility rules gating who may grant or revoke a permission."""

    ROOT = "root"  # only accounts holding the `root` permission


class UnknownPermissionError(ValueError):
    """Raised when a permission is not part of the registry."""

    def __init__(self, permission: str) -> None:
        self.permission = permission
        super().__init__(f'Unrecognised permission: "{permission}"')


@dataclass(frozen=True)
class PermissionDescriptor:
    """Static description of a single permission."""

    name: str
    description: str
    type: PermissionType
    restrict: AccessRestriction | Mapping[AccessOperation, AccessRestriction] | None = None
    hide: bool | tuple[AccessOperation, ...] = False
    require_event: bool = False
    require_team: bool = False
    warning: bool = False

    def is_hidden(self, operation: AccessOperation | None = None) -> bool:
        if self.hide is True:
            return True
        if operation is not None and isinstance(self.hide, tuple):
            return operation in self.hide
        return False


class RestrictionRule(NamedTuple):
    """A restriction declared by `permission`, optionally for a single operation."""

    permission: str
    operation: AccessOperation | None
    restriction: AccessRestriction


# ── Registry ─────────────────────────────────────────────────

PERMISSIONS: dict[str, PermissionDescriptor] = {
    # Root & administrator
    "root": PermissionDescriptor(
        name="Root (role)",
        description=(
            "The root role grants every permission, including the ability to assign restricted "
            "permissions to other accounts."
        ),
        type="boolean",
        restrict=AccessRestriction.ROOT,
        warning=True,
    ),
    "admin": PermissionDescriptor(
        name="Administrator (role)",
        description=(
            "The administrator role grants all permissions in the system without exception, "
            "including full access to all event and volunteer information."
        ),
        type="boolean",
        warning=True,
    ),
    # Event-associated permissions
    "event.applications": PermissionDescriptor(
        name="Event volunteer applications",
        description=(
            "Whether the volunteer is able to deal with incoming participation applications."
        ),
        type="crud",
        hide=("delete",),  # applications must be responded to, even if done silently
        require_event=True,
        require_team=True,
    ),
    "event.hotels": PermissionDescriptor(
        name="Hotel room management",
        description="Whether the volunteer is able to manage hotel rooms and bookings.",
        type="boolean",
        require_event=True,
    ),
    "event.refunds": PermissionDescriptor(
        name="Ticket refunds",
        description="Whether the volunteer is able to see and process ticket refund requests.",
        type="boolean",
        require_event=True,
    ),
    "event.requests": PermissionDescriptor(
        name="Program request management",
        description="Whether the volunteer is able to manage incoming program requests.",
        type="boolean",
        require_event=True,
    ),
    "event.retention": PermissionDescriptor(
        name="Retention management",
        description=(
            "Access to retention management for a particular event and team. It can reveal "
            "contact information of people who helped us out in the past."
        ),
        type="crud",
        hide=("create", "delete"),
        require_event=True,
        require_team=True,
    ),
    "event.schedules": PermissionDescriptor(
        name="Volunteer schedules",
        description="Whether the volunteer is able to see and update the volunteer schedule.",
        type="crud",
        hide=("create", "delete"),
        require_event=True,
        require_team=True,
    ),
    "event.trainings": PermissionDescriptor(
        name="Training management",
        description="Whether the volunteer is able to manage trainings and their participants.",
        type="boolean",
        require_event=True,
    ),
    "event.vendors": PermissionDescriptor(
        name="Vendor team schedules",
        description=(
            "Whether the volunteer is able to manage vendor information of the teams they have "
            "access to, for example the first aid and security teams."
        ),
        type="crud",
        hide=("create", "delete"),  # schedules can only be read or updated
        require_event=True,
        require_team=True,
    ),
    "event.visible": PermissionDescriptor(
        name="Event visibility",
        description="Whether the volunteer is able to see the existence of a particular event.",
        type="boolean",
        require_event=True,
    ),
    "event.volunteers.information": PermissionDescriptor(
        name="Volunteer information",
        description="Whether the volunteer is able to see and update volunteer information.",
        type="crud",
        hide=("create", "delete"),
        require_event=True,
        require_team=True,
    ),
    # Organisation-associated permissions
    "organisation.accounts": PermissionDescriptor(
        name="Account management",
        description="Whether the volunteer is able to manage accounts of other volunteers.",
        type="crud",
        warning=True,
    ),
    "organisation.impersonation": PermissionDescriptor(
        name="Account impersonation",
        description="Whether the volunteer is able to sign in as another volunteer.",
        type="boolean",
        restrict=AccessRestriction.ROOT,
        warning=True,
    ),
    "organisation.permissions": PermissionDescriptor(
        name="Account permissions",
        description=(
            "Whether the volunteer is able to manage the permissions of other volunteers. This "
            "enables them to manage their own permissions as well."
        ),
        type="crud",
        hide=("create", "delete"),  # all mutations are considered updates
        warning=True,
    ),
    "organisation.roles": PermissionDescriptor(
        name="Role management",
        description="Whether the volunteer is able to manage the roles volunteers can have.",
        type="boolean",
    ),
    "organisation.teams": PermissionDescriptor(
        name="Team management",
        description="Whether the volunteer is able to manage the teams volunteers can join.",
        type="boolean",
    ),
    # Statistics
    "statistics.finances": PermissionDescriptor(
        name="Financial statistics",
        description="Whether the volunteer is able to see ticket sales and financial reports.",
        type="boolean",
    ),
    # System-associated permissions
    "system.internals": PermissionDescriptor(
        name="System internals",
        description="Whether the volunteer is able to access internal system configuration.",
        type="boolean",
        restrict=AccessRestriction.ROOT,
        warning=True,
    ),
    "system.logs": PermissionDescriptor(
        name="Volunteer Manager logs",
        description=(
            "Whether the volunteer is able to access system logs, which contain all account "
            "activity, actions and changes made in the Volunteer Manager."
        ),
        type="crud",
        restrict={"delete": AccessRestriction.ROOT},
        hide=("create", "update"),  # logs generally should be read-only, but can be deleted
        warning=True,
    ),
    # Volunteer-associated permissions
    "volunteer.avatars": PermissionDescriptor(
        name="Avatar management",
        description="Whether the volunteer is able to update or delete avatars of others.",
        type="boolean",
    ),
    "volunteer.export": PermissionDescriptor(
        name="Export volunteering information",
        description="Whether the volunteer is able to export volunteering information.",
        type="boolean",
        warning=True,
    ),
    "volunteer.silent": PermissionDescriptor(
        name="Silent mutations",
        description=(
            "Whether the volunteer is able to make significant changes to someone's "
            "participation in an event without having to send them a message."
        ),
        type="boolean",
        warning=True,
    ),
    # Permissions that exist for testing purposes
    "test.boolean": PermissionDescriptor(
        name="Test (boolean)",
        description="Boolean permission exclusively used for testing purposes",
        type="boolean",
        hide=True,
    ),
    "test.boolean.required.both": PermissionDescriptor(
        name="Test (boolean w/ event + team)",
        description="Boolean permission used for testing purposes w/ required scoping",
        type="boolean",
        hide=True,
        require_event=True,
        require_team=True,
    ),
    "test.boolean.required.event": PermissionDescriptor(
        name="Test (boolean w/ event)",
        description="Boolean permission used for testing purposes w/ required event",
        type="boolean",
        hide=True,
        require_event=True,
    ),
    "test.crud": PermissionDescriptor(
        name="Test (CRUD)",
        description="CRUD permission exclusively used for testing purposes",
        type="crud",
        hide=True,
    ),
}

# ── Permission groups ────────────────────────────────────────

# Groups are expanded prior to being applied, transitively: granting "root"
# grants "admin", which in turn grants every top-level namespace.
PERMISSION_GROUPS: dict[str, list[str]] = {
    "root": [
        "root",  # reflection
        "admin",
    ],
    "admin": [
        "admin",  # reflection
        "event",
        "organisation",
        "statistics",
        "system",
        "volunteer",
        "test",
    ],
    "everyone": [],
    "staff": [
        "event.applications:read",
        "event.applications:update",
        "event.requests",
        "event.retention",
        "event.vendors",
        "event.visible",
        "volunteer.avatars",
    ],
    "senior": [
        "event.applications:read",
        "event.vendors:read",
        "event.visible",
        "volunteer.avatars",
    ],
}


def get_descriptor(permission: str) -> PermissionDescriptor:
    """Return the descriptor for `permission`, or raise UnknownPermissionError."""
    try:
        return PERMISSIONS[permission]
    except KeyError:
        raise UnknownPermissionError(permission) from None


def split_permission(permission: str) -> tuple[str, AccessOperation | None]:
    """Split "foo.bar:read" into ("foo.bar", "read")."""
    base, _, operation = permission.partition(":")
    return base, operation or None  # type: ignore[return-value]


def _is_related(candidate: str, permission: str) -> bool:
    if candidate == permission:
        return True
    return candidate.startswith(f"{permission}.") or permission.startswith(f"{candidate}.")


def _expand_groups(
    permission: str, operation: AccessOperation | None
) -> list[tuple[str, AccessOperation | None]]:
    expanded: list[tuple[str, AccessOperation | None]] = [(permission, operation)]
    seen = {permission}
    for name, _ in expanded:
        for member in PERMISSION_GROUPS.get(name, ()):
            if member in seen:
                continue
            seen.add(member)
            expanded.append(split_permission(member))
    return expanded


@lru_cache(maxsize=512)
def restrictions_for(
    permission: str, operation: AccessOperation | None = None
) -> tuple[RestrictionRule, ...]:
    """Return every restriction that applies when assigning `permission`.

    Restrictions of the permission itself, of its descendants (which it
    implicitly grants), of its ancestors and of the members of a permission
    group are included. `permission` does not have to exist in the registry.
    When `operation` is given, operation-specific rules for other operations
    are left out.
    """
    rules: dict[RestrictionRule, None] = {}
    for target, target_operation in _expand_groups(permission, operation):
        for name, descriptor in PERMISSIONS.items():
            if descriptor.restrict is None or not _is_related(name, target):
                continue

            if isinstance(descriptor.restrict, AccessRestriction):
                rules[RestrictionRule(name, None, descriptor.restrict)] = None
                continue

            for verification_operation in CRUD_OPERATIONS:
                restriction = descriptor.restrict.get(verification_operation)
                if restriction is None:
                    continue
                if target_operation is not None and target_operation != verification_operation:
                    continue
                rules[RestrictionRule(name, verification_operation, restriction)] = None

    return tuple(rules)
