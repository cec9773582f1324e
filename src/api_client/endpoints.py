"""Registry of the REST endpoints callable through ApiClient.

Paths may contain `:name` placeholders which are filled in from the request
payload, e.g. "/api/admin/content/:id".
"""

from __future__ import annotations

from typing import Any, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict

HttpMethod = Literal["get", "post", "put", "delete"]


class ApiResponse(BaseModel):
    """Generic response envelope; unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    success: bool
    error: str | None = None


class RowResponse(ApiResponse):
    """Single row returned by a data table endpoint."""

    row: dict[str, Any] | None = None


class RowListResponse(ApiResponse):
    """Page of rows returned by a data table endpoint."""

    rowCount: int = 0
    rows: list[dict[str, Any]] = []


class CreatedResponse(ApiResponse):
    id: int | str | None = None


class ApiEndpoint(NamedTuple):
    """Static information about an endpoint. Responses are returned as-is without a model."""

    response_model: type[BaseModel] | None = None


API_ENDPOINTS: dict[HttpMethod, dict[str, ApiEndpoint]] = {
    "get": {
        "/api/admin/content": ApiEndpoint(RowListResponse),
        "/api/admin/content/:id": ApiEndpoint(RowResponse),
        "/api/admin/exports": ApiEndpoint(RowListResponse),
        "/api/admin/outbox/:id": ApiEndpoint(),
        "/api/nardo": ApiEndpoint(RowListResponse),
    },
    "post": {
        "/api/admin/content": ApiEndpoint(CreatedResponse),
        "/api/admin/create-event": ApiEndpoint(ApiResponse),
        "/api/admin/exports": ApiEndpoint(CreatedResponse),
        "/api/admin/hotel-bookings/:slug": ApiEndpoint(ApiResponse),
        "/api/admin/outbox": ApiEndpoint(),
        "/api/admin/training": ApiEndpoint(ApiResponse),
        "/api/admin/volunteer-teams": ApiEndpoint(ApiResponse),
        "/api/ai/generate/:type": ApiEndpoint(ApiResponse),
        "/api/auth/passkeys/create-challenge": ApiEndpoint(ApiResponse),
        "/api/auth/passkeys/register": ApiEndpoint(ApiResponse),
        "/api/auth/sign-in-impersonate": ApiEndpoint(ApiResponse),
        "/api/auth/update-avatar": ApiEndpoint(ApiResponse),
        "/api/event/application": ApiEndpoint(ApiResponse),
        "/api/event/hotel-preferences": ApiEndpoint(ApiResponse),
        "/api/event/hotels": ApiEndpoint(),
        "/api/event/training-preferences": ApiEndpoint(ApiResponse),
        "/api/exports": ApiEndpoint(ApiResponse),
        "/api/nardo": ApiEndpoint(CreatedResponse),
    },
    "delete": {
        "/api/admin/content/:id": ApiEndpoint(ApiResponse),
        "/api/admin/exports/:id": ApiEndpoint(ApiResponse),
        "/api/admin/hotel-bookings/:slug/:id": ApiEndpoint(ApiResponse),
        "/api/nardo/:id": ApiEndpoint(ApiResponse),
    },
    "put": {
        "/api/admin/content/:id": ApiEndpoint(ApiResponse),
        "/api/admin/hotel-bookings/:slug/:id": ApiEndpoint(ApiResponse),
        "/api/ai/settings": ApiEndpoint(ApiResponse),
        "/api/application/:event/:team/:userId": ApiEndpoint(ApiResponse),
        "/api/nardo/:id": ApiEndpoint(ApiResponse),
    },
}
