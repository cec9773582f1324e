"""JWT authentication for the admin API.

Tokens are issued by the Volunteer Manager's sign-in flow and carry the
account's `user_id`. The caller's access is loaded from the database on every
request, so permission changes take effect immediately.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
import uuid
from base64 import urlsafe_b64decode, urlsafe_b64encode
from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from src.auth.access_control import AccessControl
from src.auth.access_list import Grant
from src.config import get_settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None


async def _get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(settings.database.url, pool_pre_ping=True)
    return _engine


@dataclass
class AccountContext:
    """The signed in account making a request."""

    user_id: int
    access: AccessControl
    token: dict[str, Any]


def _b64_encode(data: bytes) -> str:
    return urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64_decode(s: str) -> bytes:
    padding = 4 - len(s) % 4
    return urlsafe_b64decode(s + "=" * padding)


def create_jwt(payload: dict[str, Any], secret: str, expires_in: int = 86400) -> str:
    """Create a simple JWT token (HS256)."""
    header = {"alg": "HS256", "typ": "JWT"}
    payload = {
        **payload,
        "exp": int(time.time()) + expires_in,
        "iat": int(time.time()),
        "jti": str(uuid.uuid4()),
    }

    header_b64 = _b64_encode(json.dumps(header).encode())
    payload_b64 = _b64_encode(json.dumps(payload).encode())

    message = f"{header_b64}.{payload_b64}"
    signature = hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()
    sig_b64 = _b64_encode(signature)

    return f"{message}.{sig_b64}"


def verify_jwt(token: str, secret: str) -> dict[str, Any]:
    """Verify and decode a JWT token."""
    parts = token.split(".")
    if len(parts) != 3:
        msg = "Invalid token format"
        raise ValueError(msg)

    message = f"{parts[0]}.{parts[1]}"
    expected_sig = hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()
    actual_sig = _b64_decode(parts[2])

    if not hmac.compare_digest(expected_sig, actual_sig):
        msg = "Invalid signature"
        raise ValueError(msg)

    payload = json.loads(_b64_decode(parts[1]))
    if payload.get("exp", 0) < time.time():
        msg = "Token expired"
        raise ValueError(msg)

    result: dict[str, Any] = payload
    return result


async def load_account_access(
    conn: AsyncConnection, user_id: int
) -> tuple[dict[str, Any] | None, list[Grant]]:
    """Load the account's own permission columns and its role-derived grants.

    Role grants come from accepted participations in events that are not
    hidden, scoped to that event and team. Returns (None, []) for unknown
    accounts.
    """
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
    row = result.first()
    if not row:
        return None, []

    roles = await conn.execute(
        text("""
            SELECT e.event_slug AS event,
                   t.team_slug AS team,
                   r.role_permission_grant AS permission
            FROM users_events ue
            JOIN events e ON e.event_id = ue.event_id AND e.event_hidden = 0
            JOIN roles r ON r.role_id = ue.role_id
            JOIN teams t ON t.team_id = ue.team_id
            WHERE ue.user_id = :user_id
              AND ue.registration_status = 'Accepted'
              AND r.role_permission_grant IS NOT NULL
        """),
        {"user_id": user_id},
    )
    role_grants = [
        Grant(permission=r.permission, event=r.event, team=r.team)
        for r in roles
        if r.permission
    ]

    return dict(row._mapping), role_grants


async def require_account(request: Request) -> AccountContext:
    """FastAPI dependency: verify the JWT and load the caller's access."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing authorization token")

    token = auth_header[7:]
    settings = get_settings()

    try:
        payload = verify_jwt(token, settings.admin.jwt_secret)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    user_id = payload.get("user_id")
    if not isinstance(user_id, int):
        raise HTTPException(status_code=401, detail="Token does not identify an account")

    engine = await _get_engine()
    async with engine.begin() as conn:
        row, roles = await load_account_access(conn, user_id)

    if row is None:
        logger.warning("Token for unknown account", extra={"user_id": user_id})
        raise HTTPException(status_code=401, detail="Unknown account")

    return AccountContext(
        user_id=user_id, access=AccessControl.from_row(row, roles), token=payload
    )
