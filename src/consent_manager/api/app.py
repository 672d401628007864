"""ASGI entrypoint: ``uvicorn consent_manager.api.app:app``."""

from consent_manager.api.factory import create_app

app = create_app()
