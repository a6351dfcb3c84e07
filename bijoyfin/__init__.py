"""Compatibility shim exposing the FastAPI app and the client building blocks."""

from __future__ import annotations

from app.main import app, create_app
from app.services.auth import SessionManager, build_auth_header
from app.services.catalog import CatalogClient
from app.services.media import MediaResolver

__all__ = [
    "CatalogClient",
    "MediaResolver",
    "SessionManager",
    "app",
    "build_auth_header",
    "create_app",
]
