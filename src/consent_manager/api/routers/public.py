"""Public-facing routes (mounted for every APP_ROLE)."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from consent_manager.api.responses import error_response, success_response
from consent_manager.infra.db import ping
from consent_manager.infra.time import to_iso, utc_now

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness check."""
    return {"status": "ok"}


@router.get("/api/health")
def api_health() -> JSONResponse:
    """Readiness check: 503 when the database does not answer."""
    if not ping():
        return error_response(503, "Database unavailable", "Database connection failed")
    return success_response({"status": "healthy", "database": "connected", "timestamp": to_iso(utc_now())})
