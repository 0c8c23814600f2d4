from __future__ import annotations

from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Request

from staffgate.core.config import get_settings

router = APIRouter(tags=["Observability"])
logger = structlog.get_logger()


def session_status(request: Request) -> dict:
    """Report whether client sessions are being served, and how many are live."""
    sessions = getattr(request.app.state, "sessions", None)
    if sessions is None:
        return {"status": "unavailable"}
    return {"status": "ok", "clients": len(sessions)}


@router.get("/health", summary="Service health check")
async def health_check(request: Request) -> dict:
    """Return basic service, session and identity provider information."""
    settings = get_settings()

    session = session_status(request)
    identity_provider = {
        "url": settings.supabase_url,
        "configured": bool(settings.supabase_anon_key),
    }

    overall_status = "ok"
    if session.get("status") != "ok" or not identity_provider["configured"]:
        overall_status = "degraded"

    payload = {
        "service": settings.app_name,
        "version": settings.version,
        "status": overall_status,
        "timestamp": datetime.now(UTC).isoformat(),
        "session": session,
        "identity_provider": identity_provider,
    }
    logger.info("health_check", **payload)
    return payload
