"""FastAPI application factory with role-based route mounting."""

import os
from typing import Literal

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from consent_manager.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)

from .routers import public
from .routes import (
    analytics,
    auth,
    consent_submission,
    me,
    public_templates,
    purposes,
    settings,
    templates,
    vendors,
)

AppRole = Literal["public", "admin"]


def _cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ALLOW_ORIGINS", "*")
    return [o.strip() for o in raw.split(",") if o.strip()] or ["*"]


def create_app(role: AppRole | None = None) -> FastAPI:
    """Create FastAPI app with routes based on APP_ROLE.

    Args:
        role: Explicit role override. If None, reads from APP_ROLE env var.
              Defaults to "public" if env var is not set.

    Returns:
        Configured FastAPI application.
    """
    if role is None:
        role = os.environ.get("APP_ROLE", "public")  # type: ignore[assignment]

    app = FastAPI(
        title="Consent Manager",
        docs_url=None,
        redoc_url=None,
    )

    # Widget endpoints are called from arbitrary host pages
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[CORRELATION_ID_HEADER],
    )

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    # Public routes (always): health + widget contract
    app.include_router(public.router)
    app.include_router(public_templates.router)
    app.include_router(consent_submission.router)

    # Admin console routes only for admin role
    if role == "admin":
        app.include_router(auth.router)
        app.include_router(me.router)
        app.include_router(templates.router)
        app.include_router(purposes.router)
        app.include_router(consent_submission.admin_router)
        app.include_router(analytics.router)
        app.include_router(vendors.router)
        app.include_router(settings.router)

    return app
