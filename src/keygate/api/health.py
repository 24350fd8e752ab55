"""Health check endpoints."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request

if TYPE_CHECKING:
    from fastapi import FastAPI

router = APIRouter(tags=["health"])

_START_TIME = time.monotonic()


async def health() -> dict[str, str]:
    """Basic health check -- always returns quickly, never needs credentials."""
    return {"status": "ok"}


@router.get("/health/detailed")
async def health_detailed(request: Request) -> dict[str, Any]:
    """Detailed health check with component status."""
    from keygate import __version__

    checks: dict[str, Any] = {
        "status": "ok",
        "version": __version__,
        "uptime_seconds": round(time.monotonic() - _START_TIME, 1),
        "components": {},
    }

    # Database check
    try:
        db_factory = request.app.state.db_factory
        async with db_factory() as session:
            from sqlalchemy import text

            await session.execute(text("SELECT 1"))
        checks["components"]["database"] = {"status": "ok"}
    except Exception as e:
        checks["components"]["database"] = {"status": "error", "detail": str(e)}
        checks["status"] = "degraded"

    return checks


def mount_health(app: FastAPI, path: str) -> None:
    """Register the unauthenticated health route at *path*."""
    app.add_api_route(path, health, methods=["GET"], tags=["health"])
