"""Client for the Volunteer Manager's own REST API.

Calls are dispatched by HTTP method and endpoint template; placeholders in
the template are filled from the request payload, the remainder of which is
sent as query parameters (GET) or as a JSON body (everything else).
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import Any, Mapping

import aiohttp
from pydantic import BaseModel

from src.api_client.endpoints import API_ENDPOINTS, HttpMethod

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r":(\w+)")


class ApiPlaceholderError(ValueError):
    """Raised when an endpoint placeholder cannot be filled from the request."""


class ApiCallError(Exception):
    """Raised when the server responds with a non-2xx status code."""

    def __init__(self, status: int, body: str = "") -> None:
        self.status = status
        self.body = body
        super().__init__(f"The server responded with HTTP {status} status code.")


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def fill_placeholders(endpoint: str, request: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
    """Substitute `:name` placeholders, returning the path and the remaining payload.

    The given `request` is not modified.
    """
    payload = dict(request)
    consumed: set[str] = set()

    def _replace(match: re.Match[str]) -> str:
        placeholder = match.group(1)
        if placeholder not in payload:
            raise ApiPlaceholderError(
                f'Endpoint placeholder doesn\'t exist in the request: ":{placeholder}"'
            )

        value = payload[placeholder]
        if not _is_scalar(value):
            raise ApiPlaceholderError(
                f"Endpoint placeholders must be scalars (found {type(value).__name__})"
            )

        consumed.add(placeholder)
        return str(value)

    path = _PLACEHOLDER_RE.sub(_replace, endpoint)
    for placeholder in consumed:
        del payload[placeholder]

    return path, payload


def to_search_params(value: Any, path: tuple[str, ...] = ()) -> list[tuple[str, str]]:
    """Flatten a nested payload into query parameters with dotted keys.

    {"a": {"b": 1}} becomes [("a.b", "1")]; lists repeat their key and None
    values are left out.
    """
    if value is None:
        return []

    if isinstance(value, Mapping):
        params: list[tuple[str, str]] = []
        for key, child in value.items():
            params.extend(to_search_params(child, (*path, str(key))))
        return params

    key = ".".join(path)
    if isinstance(value, (list, tuple)):
        return [(key, _to_param(item)) for item in value if item is not None]

    return [(key, _to_param(value))]


def _to_param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ApiClient:
    """HTTP client for the Volunteer Manager REST API.

    The aiohttp session can be passed in, in which case the caller owns it and
    close() leaves it open.
    """

    def __init__(
        self,
        base_url: str,
        session: aiohttp.ClientSession | None = None,
        timeout: int = 10,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def open(self) -> None:
        """Open the HTTP session, unless one was injected."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Accept": "application/json"},
            )
            self._owns_session = True

    async def close(self) -> None:
        """Close the HTTP session if it was opened by this client."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> ApiClient:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def call(
        self,
        method: HttpMethod,
        endpoint: str,
        request: Mapping[str, Any] | None = None,
    ) -> Any:
        """Issue `method` against `endpoint`, e.g. call("delete", "/api/nardo/:id", {"id": 42}).

        Returns the decoded JSON response, validated against the endpoint's
        response model when one has been registered.
        """
        registered = API_ENDPOINTS.get(method, {}).get(endpoint)
        if registered is None:
            raise ValueError(f"Unknown API endpoint: {method.upper()} {endpoint}")

        path, payload = fill_placeholders(endpoint, request or {})

        if self._session is None:
            raise RuntimeError("ApiClient not opened, call open() first")

        url = f"{self._base_url}{path}"
        headers = {"X-Request-Id": str(uuid.uuid4())}
        params: list[tuple[str, str]] | None = None
        json_data: dict[str, Any] | None = None

        if method == "get":
            params = to_search_params(payload)
        else:
            headers["Content-Type"] = "application/json"
            json_data = payload

        async with self._session.request(
            method.upper(), url, params=params, json=json_data, headers=headers
        ) as resp:
            if resp.status < 200 or resp.status >= 300:
                body = await resp.text()
                logger.warning(
                    "API call failed: %s %s -> HTTP %d", method.upper(), path, resp.status
                )
                raise ApiCallError(resp.status, body[:200])

            data = await resp.json()

        return _validate(registered.response_model, data)


def _validate(model: type[BaseModel] | None, data: Any) -> Any:
    if model is None:
        return data
    return model.model_validate(data)
