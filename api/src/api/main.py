"""FastAPI application factory."""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from alembic.config import Config as AlembicConfig
from alembic.script import ScriptDirectory
from bragfeed.config import get_settings
from bragfeed.database import close_engine, get_engine
from fastapi import FastAPI
from sqlalchemy import text

from api.middleware.rate_limit import RateLimitExceeded, rate_limit_exceeded_handler
from api.routers import dashboard, google, health, stripe_webhook, user_subscription
from api.services.review_source import ReviewSource

logger = logging.getLogger(__name__)


async def _assert_database_revision_current() -> None:
    settings = get_settings()
    if settings.skip_migration_check:
        return

    repo_root = Path(__file__).resolve().parents[3]
    alembic_ini = repo_root / "alembic.ini"
    if not alembic_ini.exists():
        logger.warning("alembic.ini not found; skipping migration revision check")
        return

    alembic_cfg = AlembicConfig(str(alembic_ini))
    alembic_cfg.set_main_option("script_location", str(repo_root / "alembic"))
    script = ScriptDirectory.from_config(alembic_cfg)
    expected_heads = set(script.get_heads())
    if not expected_heads:
        return

    engine = get_engine()
    try:
        async with engine.connect() as connection:
            result = await connection.execute(text("SELECT version_num FROM alembic_version"))
            current_revisions = {str(row[0]) for row in result.fetchall() if row and row[0]}
    except Exception as exc:
        raise RuntimeError(
            "Database migration revision check failed. "
            "Run `alembic upgrade head` before starting the API."
        ) from exc

    if current_revisions != expected_heads:
        raise RuntimeError(
            "Database schema revision mismatch: "
            f"db={sorted(current_revisions)} expected={sorted(expected_heads)}. "
            "Run `alembic upgrade head`."
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    try:
        await _assert_database_revision_current()
        yield
    finally:
        await close_engine()


def _configure_logging() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        stream=sys.stdout,
    )


def _warn_insecure_defaults() -> None:
    settings = get_settings()
    if settings.secret_key == "change-me-in-production":
        logger.warning("SECRET_KEY uses insecure default value")
    if not settings.stripe_webhook_secret:
        logger.warning("STRIPE_WEBHOOK_SECRET is empty; webhook deliveries will be rejected")


def create_app(review_source: ReviewSource | None = None) -> FastAPI:
    _configure_logging()
    app = FastAPI(title="Bragfeed API", version="0.1.0", lifespan=lifespan)
    _warn_insecure_defaults()
    app.state.review_source = review_source
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.include_router(health.router, tags=["health"])
    app.include_router(google.router, prefix="/v1/google", tags=["google"])
    app.include_router(dashboard.router, prefix="/v1/dashboard", tags=["dashboard"])
    app.include_router(
        user_subscription.router,
        prefix="/v1/user/subscription",
        tags=["user-subscription"],
    )
    app.include_router(stripe_webhook.router, prefix="/v1/purchases", tags=["stripe"])
    return app


app = create_app()
