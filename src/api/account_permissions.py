"""Account permission API endpoints.

Shows the permission table of a single account and accepts updates to its
grants, revokes and global event/team access.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Literal, Union

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.api.auth import AccountContext, load_account_access, require_account
from src.auth.access import CRUD_OPERATIONS, PERMISSIONS, AccessRestriction
from src.auth.access_control import ANY_SCOPE, AccessControl, AccessResult
from src.auth.access_list import ANY_EVENT, ANY_TEAM
from src.auth.permission_list import (
    SELF_SUFFIX,
    PermissionRestrictionError,
    is_restricted,
    to_permission_list,
)
from src.config import get_settings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["permissions"])

_engine: AsyncEngine | None = None

# Module-level dependency to satisfy B008 lint rule
_account_dep = Depends(require_account)


async def _get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(settings.database.url, pool_pre_ping=True)
    return _engine


StatusValue = Union[AccessResult, Literal["partial"], None]


class AccountPermissionUpdate(BaseModel):
    grants: dict[str, Any] | None = None
    revokes: dict[str, Any] | None = None
    events: list[str] = Field(default_factory=list)
    teams: list[str] = Field(default_factory=list)


def maybe_upgrade_permission_status(current: StatusValue, child: StatusValue) -> StatusValue:
    """Fold the status of a CRUD operation into the status of its permission.

    An unset permission adopts an inherited or granted child; a set permission
    becomes "partial" when one of its children is revoked or partial itself.
    """
    if current is None and isinstance(child, AccessResult):
        if child.expanded or child.result == "granted":
            return child
    elif isinstance(current, AccessResult) and child is not None:
        if child == "partial" or child.result == "revoked":
            return "partial"

    return current


def _status_json(status: StatusValue) -> dict[str, Any] | str | None:
    if isinstance(status, AccessResult):
        data = asdict(status)
        data["global"] = data.pop("global_")
        return data
    return status


def _lowercase_first(value: str) -> str:
    return value[:1].lower() + value[1:]


def _form_defaults(
    defaults: dict[str, bool], status: AccessResult | None, key: str
) -> None:
    if status is None:
        return
    list_name = "grants" if status.result == "granted" else "revokes"
    defaults[f"{list_name}[{key}]"] = True


def build_permission_table(
    caller: AccessControl, account: AccessControl, roles: AccessControl
) -> tuple[list[dict[str, Any]], dict[str, bool]]:
    """Build the rows and form defaults of the permission table of `account`."""
    rows: list[dict[str, Any]] = []
    defaults: dict[str, bool] = {}

    for name, descriptor in PERMISSIONS.items():
        if descriptor.hide is True:
            continue

        restricted = False
        if isinstance(descriptor.restrict, AccessRestriction):
            restricted = is_restricted(descriptor.restrict, caller)

        row: dict[str, Any] = {
            "id": name,
            "name": descriptor.name,
            "description": descriptor.description,
            "warning": descriptor.warning,
            "restricted": restricted,
        }

        if descriptor.type == "boolean":
            account_status: StatusValue = account.query(name, scope=ANY_SCOPE)
            roles_status: StatusValue = roles.query(name, scope=ANY_SCOPE)
            if isinstance(account_status, AccessResult) and not account_status.expanded:
                _form_defaults(defaults, account_status, name)

            row["status"] = {
                "account": _status_json(account_status),
                "roles": _status_json(roles_status),
            }
            rows.append(row)
            continue

        row["suffix"] = SELF_SUFFIX
        account_status = None
        roles_status = None
        children: list[dict[str, Any]] = []

        for operation in CRUD_OPERATIONS:
            if descriptor.is_hidden(operation):
                continue

            child_account = account.query(name, operation, ANY_SCOPE)
            child_roles = roles.query(name, operation, ANY_SCOPE)

            child_restricted = restricted
            if isinstance(descriptor.restrict, dict) and descriptor.restrict.get(operation):
                child_restricted = is_restricted(descriptor.restrict[operation], caller)

            account_status = maybe_upgrade_permission_status(account_status, child_account)
            roles_status = maybe_upgrade_permission_status(roles_status, child_roles)

            if child_account is not None and (
                not child_account.expanded or not child_account.crud
            ):
                key = f"{name}.{operation}" if child_account.crud else f"{name}{SELF_SUFFIX}"
                _form_defaults(defaults, child_account, key)

            children.append({
                "id": f"{name}.{operation}",
                "name": f"{operation.capitalize()} {_lowercase_first(descriptor.name)}",
                "restricted": child_restricted,
                "status": {
                    "account": _status_json(child_account),
                    "roles": _status_json(child_roles),
                },
            })

        row["status"] = {
            "account": _status_json(account_status),
            "roles": _status_json(roles_status),
        }
        rows.append(row)
        rows.extend(children)

    return rows, defaults


def _collapse_scope(values: list[str], wildcard: str) -> str | None:
    if not values:
        return None
    return wildcard if wildcard in values else ",".join(values)


@router.get("/accounts/{user_id}/permissions")
async def get_account_permissions(
    user_id: int,
    caller: AccountContext = _account_dep,
) -> dict[str, Any]:
    """Permission table of an account, including role-derived access."""
    if not caller.access.can("organisation.permissions", "read"):
        raise HTTPException(status_code=403, detail="You are not able to view permissions")

    engine = await _get_engine()
    async with engine.begin() as conn:
        row, role_grants = await load_account_access(conn, user_id)

    if row is None:
        raise HTTPException(status_code=404, detail="Account not found")

    account = AccessControl.from_row(row)
    roles = AccessControl(grants=role_grants)

    permissions, defaults = build_permission_table(caller.access, account, roles)

    outranks = account.can("root") and not caller.access.can("root")
    read_only = outranks or not caller.access.can("organisation.permissions", "update")

    return {
        "user_id": user_id,
        "events": row["events"].split(",") if row.get("events") else [],
        "teams": row["teams"].split(",") if row.get("teams") else [],
        "permissions": permissions,
        "default_values": defaults,
        "outranks": outranks,
        "read_only": read_only,
    }


@router.put("/accounts/{user_id}/permissions")
async def update_account_permissions(
    user_id: int,
    req: AccountPermissionUpdate,
    request: Request,
    caller: AccountContext = _account_dep,
) -> dict[str, Any]:
    """Replace the grants, revokes and global event/team access of an account."""
    if not caller.access.can("organisation.permissions", "update"):
        raise HTTPException(status_code=403, detail="You are not able to update permissions")

    engine = await _get_engine()
    async with engine.begin() as conn:
        result = await conn.execute(
            text("""
                SELECT user_id,
                       permissions_grants AS grants,
                       permissions_revokes AS revokes,
                       permissions_events AS events,
                       permissions_teams AS teams
                FROM users
                WHERE user_id = :user_id
            """),
            {"user_id": user_id},
        )
        existing_row = result.first()
        if not existing_row:
            raise HTTPException(status_code=404, detail="Account not found")

        existing_access = AccessControl.from_row(dict(existing_row._mapping))
        if existing_access.can("root") and not caller.access.can("root"):
            raise HTTPException(
                status_code=403, detail="You are not allowed to update these permissions"
            )

        try:
            grants = (
                to_permission_list(req.grants, caller.access, existing_access)
                if req.grants
                else None
            )
            revokes = (
                to_permission_list(req.revokes, caller.access, existing_access)
                if req.revokes
                else None
            )
        except (PermissionRestrictionError, TypeError) as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        events = _collapse_scope(req.events, ANY_EVENT)
        teams = _collapse_scope(req.teams, ANY_TEAM)

        updated = await conn.execute(
            text("""
                UPDATE users
                SET permissions_grants = :grants,
                    permissions_revokes = :revokes,
                    permissions_events = :events,
                    permissions_teams = :teams
                WHERE user_id = :user_id
                RETURNING user_id
            """),
            {
                "user_id": user_id,
                "grants": grants,
                "revokes": revokes,
                "events": events,
                "teams": teams,
            },
        )
        if not updated.first():
            raise HTTPException(
                status_code=500, detail="Unable to update permissions in the database"
            )

    logger.warning(
        "Account permissions updated: grants=%s revokes=%s events=%s teams=%s",
        grants,
        revokes,
        events,
        teams,
        extra={
            "user_id": caller.user_id,
            "target_user_id": user_id,
            "ip": request.client.host if request.client else "unknown",
        },
    )

    return {
        "success": True,
        "grants": grants,
        "revokes": revokes,
        "events": events,
        "teams": teams,
    }
