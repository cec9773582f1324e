"""Unit tests for the application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

import src.main
from src.main import app

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@pytest.fixture(autouse=True)
def _reset_engine() -> None:
    src.main._db_engine = None


class TestHealth:
    def test_health(self) -> None:
        response = TestClient(app).get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_routes_registered(self) -> None:
        paths = {route.path for route in app.routes}  # type: ignore[attr-defined]
        assert "/admin/accounts/{user_id}/permissions" in paths


class TestReadiness:
    @patch("src.main.create_async_engine")
    def test_ready(self, mock_create: MagicMock) -> None:
        conn = AsyncMock()
        engine = MagicMock()

        @asynccontextmanager
        async def _connect() -> AsyncIterator[AsyncMock]:
            yield conn

        engine.connect = _connect
        mock_create.return_value = engine

        response = TestClient(app).get("/health/ready")
        assert response.json() == {"status": "ready", "checks": {"database": "connected"}}
        conn.execute.assert_awaited_once()

    @patch("src.main.create_async_engine")
    def test_not_ready(self, mock_create: MagicMock) -> None:
        mock_create.side_effect = OSError("connection refused")

        response = TestClient(app).get("/health/ready")
        assert response.json()["status"] == "not_ready"
        assert response.json()["checks"]["database"] == "disconnected"


class TestMain:
    @patch("src.main.uvicorn.run")
    @patch("src.main.setup_logging")
    @patch("src.main.get_settings")
    def test_starts_server(
        self, mock_settings: MagicMock, mock_logging: MagicMock, mock_run: MagicMock
    ) -> None:
        settings = mock_settings.return_value
        settings.validate_required.return_value.ok = True
        settings.logging.level = "INFO"
        settings.logging.format = "json"
        settings.admin.host = "127.0.0.1"
        settings.admin.port = 8080

        src.main.main()

        mock_logging.assert_called_once_with(level="INFO", format_type="json")
        mock_run.assert_called_once()
        assert mock_run.call_args.kwargs["port"] == 8080

    @patch("src.main.uvicorn.run")
    @patch("src.main.get_settings")
    def test_invalid_config_exits(self, mock_settings: MagicMock, mock_run: MagicMock) -> None:
        result = mock_settings.return_value.validate_required.return_value
        result.ok = False
        result.errors = []

        with pytest.raises(SystemExit):
            src.main.main()
        mock_run.assert_not_called()
