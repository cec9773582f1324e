"""Volunteer Manager admin API: application entry point."""

import logging
import os
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.api.account_permissions import router as account_permissions_router
from src.config import get_settings
from src.logging.structured_logger import setup_logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Volunteer Manager Admin",
    description="Account permission administration for the Volunteer Manager",
    version="0.1.0",
)
app.include_router(account_permissions_router)
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.environ.get("CORS_ALLOWED_ORIGINS", "").split(",")
    if os.environ.get("CORS_ALLOWED_ORIGINS")
    else [],
    allow_credentials=True,
    allow_methods=["GET", "PUT"],
    allow_headers=["Authorization", "Content-Type"],
)

_db_engine: AsyncEngine | None = None


@app.get("/health")
async def health_check() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/health/ready")
async def readiness_check() -> dict[str, object]:
    """Readiness probe: verifies the database is reachable."""
    global _db_engine
    checks: dict[str, str] = {}

    try:
        if _db_engine is None:
            _db_engine = create_async_engine(get_settings().database.url, pool_pre_ping=True)
        async with _db_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "connected"
    except Exception:
        logger.warning("Database readiness check failed", exc_info=True)
        checks["database"] = "disconnected"

    ready = all(v == "connected" for v in checks.values())
    return {"status": "ready" if ready else "not_ready", "checks": checks}


def main() -> None:
    """Main application entry point."""
    settings = get_settings()

    # Validate configuration before anything else
    validation = settings.validate_required()
    if not validation.ok:
        for err in validation.errors:
            hint = f" Hint: {err.hint}" if err.hint else ""
            print(f"❌ {err.field}: {err.message}.{hint}")
        print(f"\n{len(validation.errors)} configuration error(s). Fix them and restart.")
        sys.exit(1)

    # Configure structured logging
    setup_logging(level=settings.logging.level, format_type=settings.logging.format)

    logger.info("Starting Volunteer Manager admin v0.1.0")

    uvicorn.run(
        app,
        host=settings.admin.host,
        port=settings.admin.port,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
