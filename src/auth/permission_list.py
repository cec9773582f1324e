"""Conversion of submitted permission toggles into a persisted permission list.

The account permission form submits grants and revokes as nested objects keyed
by permission segment, for example:

    {"event": {"applications": {"read": True, "update": True}, "visible": False}}

which flattens to "event.applications:read,event.applications:update". CRUD
permissions with all four operations toggled collapse to the bare permission.

Form fields are submitted in declaration order, so a whole-permission toggle
("foo": True) would be overwritten by its per-operation children ("foo": {...}).
Whole-permission toggles are therefore keyed with the ":self" suffix.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

from src.auth.access import (
    CRUD_OPERATIONS,
    PERMISSIONS,
    AccessOperation,
    AccessRestriction,
    get_descriptor,
    restrictions_for,
    split_permission,
)
from src.auth.access_control import ANY_SCOPE, AccessControl

SELF_SUFFIX = ":self"


class PermissionRestrictionError(Exception):
    """Raised when the acting user may not assign a restricted permission."""

    def __init__(self, permission: str) -> None:
        self.permission = permission
        super().__init__(f'You are not able to assign the "{permission}" permission')


@dataclass(frozen=True)
class WholePermission:
    """Form key toggling a CRUD permission as a whole ("applications:self")."""

    segment: str

    @property
    def form_key(self) -> str:
        return f"{self.segment}{SELF_SUFFIX}"


@dataclass(frozen=True)
class OperationPermission:
    """Form key naming a child: a namespace, a permission, or a CRUD operation."""

    segment: str

    @property
    def form_key(self) -> str:
        return self.segment


PermissionKey = Union[WholePermission, OperationPermission]


def parse_permission_key(key: str) -> PermissionKey:
    if key.endswith(SELF_SUFFIX):
        return WholePermission(key[: -len(SELF_SUFFIX)])
    return OperationPermission(key)


def is_restricted(restriction: AccessRestriction, access: AccessControl) -> bool:
    """Whether `restriction` is in effect for the given `access`."""
    if restriction == AccessRestriction.ROOT:
        return not access.can("root")

    raise ValueError(f"Unhandled permission restriction: {restriction}")


def _already_granted(
    access: AccessControl, permission: str, operation: AccessOperation | None
) -> bool:
    descriptor = get_descriptor(permission)
    if descriptor.type == "boolean":
        return access.can(permission, scope=ANY_SCOPE)
    if operation is not None:
        return access.can(permission, operation, ANY_SCOPE)
    return all(access.can(permission, op, ANY_SCOPE) for op in CRUD_OPERATIONS)


def validate_restriction(
    permission: str,
    operation: AccessOperation | None,
    restriction: AccessRestriction,
    user_access: AccessControl,
    existing_access: AccessControl,
) -> None:
    """Raise PermissionRestrictionError unless the assignment is allowed.

    Re-submitting a restricted permission the account already holds is fine;
    the check runs against `existing_access`, the state before this update.
    """
    if not is_restricted(restriction, user_access):
        return

    if _already_granted(existing_access, permission, operation):
        return

    raise PermissionRestrictionError(f"{permission}:{operation}" if operation else permission)


def _flatten(tree: Mapping[str, Any], path: str | None, permissions: list[str]) -> None:
    if not isinstance(tree, Mapping):
        raise TypeError(f'Unexpected input type: "{type(tree).__name__}"')

    for key, value in tree.items():
        segment = parse_permission_key(key).segment
        permission = f"{path}.{segment}" if path else segment

        if isinstance(value, bool):
            if value:
                permissions.append(permission)
            continue

        if not isinstance(value, Mapping):
            raise TypeError(f'Unexpected input type for "{permission}": "{type(value).__name__}"')

        descriptor = PERMISSIONS.get(permission)
        if descriptor is not None and descriptor.type == "crud":
            operations = [op for op in CRUD_OPERATIONS if value.get(op)]
            if len(operations) == len(CRUD_OPERATIONS):
                permissions.append(permission)
            else:
                permissions.extend(f"{permission}:{op}" for op in operations)
            continue

        _flatten(value, permission, permissions)


def to_permission_list(
    tree: Any, user_access: AccessControl, existing_access: AccessControl
) -> str | None:
    """Convert a nested grant (or revoke) tree into a comma-separated permission list.

    `user_access` represents the signed in user making the change and is used
    to verify restrictions; `existing_access` is the target account's access
    before the change. Returns None when nothing was toggled.

    Example: {"event": {"applications": True, "visible": False}} -> "event.applications"
    """
    permissions: list[str] = []
    _flatten(tree, None, permissions)

    if not permissions:
        return None

    # O(k*n) over the assigned permissions and the registry; restriction
    # chains are cached per permission so repeated names are cheap.
    for full_permission in permissions:
        base, operation = split_permission(full_permission)
        for rule in restrictions_for(base, operation):
            if rule.operation is not None:
                target_operation = rule.operation
            elif rule.permission == base:
                target_operation = operation
            else:
                target_operation = None

            validate_restriction(
                rule.permission, target_operation, rule.restriction, user_access, existing_access
            )

    return ",".join(permissions)
