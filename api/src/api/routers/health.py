"""Liveness and readiness probes."""

from bragfeed import database
from bragfeed.config import get_settings
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "ok", "service": "bragfeed-api"}


@router.get("/health/ready")
async def readiness_check():
    """Ready once the database answers; billing readiness is reported alongside."""
    settings = get_settings()
    checks = {"stripe_webhooks": bool(settings.stripe_webhook_secret)}
    try:
        async with database.get_session() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "error": str(exc), "checks": checks},
        )
    return {"status": "ready", "checks": checks}
