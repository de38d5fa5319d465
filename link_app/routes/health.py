# link_app/routes/health.py
"""
Health check endpoints.
"""

from fastapi import APIRouter, Request

from link_app.config import settings

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "link-coordination"}


@router.get("/readyz")
async def readyz(request: Request):
    """
    Readiness check.

    The service is ready once the coordination core is wired. The ranking
    oracle is reported but never blocks readiness: matching falls back to
    deterministic ranking without it.
    """
    coordination = getattr(request.app.state, "coordination", None)
    checks = {
        "coordination": {"ok": coordination is not None},
        "realtime": {
            "ok": coordination is not None,
            "connections": coordination.hub.connection_count if coordination else 0,
        },
        "oracle": {
            "ok": True,
            "enabled": coordination.oracle_enabled if coordination else False,
            "configured": settings.oracle_configured(),
        },
    }
    overall_ok = all(check["ok"] for check in checks.values())

    return {
        "status": "ready" if overall_ok else "not_ready",
        "environment": settings.environment,
        "checks": checks,
    }
