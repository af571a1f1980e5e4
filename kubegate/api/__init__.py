"""HTTP API layer for kubegate.

Exposes:
    create_app -- FastAPI application factory.
"""

from kubegate.api.app import create_app

__all__ = ["create_app"]
