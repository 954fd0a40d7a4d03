"""REST API layer for discotrack.

Exposes:
    create_app -- FastAPI application factory.
    build_app  -- Alias for create_app (used by discotrack.app bootstrap).
"""

from discotrack.api.app import create_app

build_app = create_app

__all__ = ["build_app", "create_app"]
