"""FastAPI application factory for the keygate REST API."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from keygate.config.schema import KeygateConfig


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan handler: build the store and gate on startup, tear down on shutdown."""
    from keygate.auth.gate import Authenticator
    from keygate.auth.hasher import SecretHasher
    from keygate.keys.manager import KeyManager
    from keygate.store.db import create_db
    from keygate.store.settings import SettingsStore

    config: KeygateConfig = app.state.config
    factory, engine = await create_db(config.database)
    retry = config.retry.to_retry_config()
    hasher = SecretHasher(config.auth)
    executor = ThreadPoolExecutor(
        max_workers=config.auth.verify_workers,
        thread_name_prefix="keygate-verify",
    )

    app.state.db_factory = factory
    app.state.engine = engine
    app.state.hasher = hasher
    app.state.key_manager = KeyManager(factory, hasher, retry, executor)
    app.state.settings_store = SettingsStore(factory, retry)
    app.state.authenticator = Authenticator(factory, hasher, retry, executor)

    try:
        yield
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
        await engine.dispose()


def create_app(config: KeygateConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    from keygate import __version__
    from keygate.config.loader import load_config

    if config is None:
        config = load_config()

    app = FastAPI(
        title="keygate",
        description="API key authenticated REST API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config

    from keygate.core.logging import setup_logging

    setup_logging(config.logging)

    from keygate.api.errors import register_error_handlers

    register_error_handlers(app)

    # ── Middleware (Starlette runs in reverse order of addition) ──
    from fastapi.middleware.cors import CORSMiddleware

    from keygate.api.middleware import (
        BasicAuthMiddleware,
        ClientRateLimitMiddleware,
        RateLimitMiddleware,
        RequestIdMiddleware,
    )

    # Per-key rate limiting (innermost, after auth so api_key_id is set)
    app.add_middleware(
        RateLimitMiddleware,
        rate_limit=config.api.rate_limit,
        window=config.api.rate_limit_window,
    )

    app.add_middleware(BasicAuthMiddleware)

    # Global and per-IP limits run before credentials are checked
    app.add_middleware(
        ClientRateLimitMiddleware,
        global_limit=config.api.rate_limit_global,
        ip_limit=config.api.rate_limit_per_ip,
        window=config.api.rate_limit_window,
    )

    app.add_middleware(RequestIdMiddleware)

    # CORS (outermost: added last, runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-Id",
            "Retry-After",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
        ],
    )

    # Routes
    from keygate.api.health import mount_health
    from keygate.api.health import router as health_router
    from keygate.api.routes.me import router as me_router
    from keygate.api.routes.settings import router as settings_router

    mount_health(app, config.api.health_path)
    app.include_router(health_router)
    app.include_router(me_router)
    app.include_router(settings_router)

    return app
