"""Response envelopes shared by the /api routes.

Every /api response is ``{"success": true, "data": ...}`` or
``{"success": false, "error": ..., "message": ...}``; the widget and the
admin console both branch on ``success``.
"""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(data: Any, *, status_code: int = 200, **extra: Any) -> JSONResponse:
    """Success envelope; ``extra`` carries e.g. message, total, page."""
    content = {"success": True, **extra, "data": data}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def error_response(status_code: int, error: str, message: str | None = None) -> JSONResponse:
    """Failure envelope."""
    content: dict[str, Any] = {"success": False, "error": error}
    if message:
        content["message"] = message
    return JSONResponse(status_code=status_code, content=content)
