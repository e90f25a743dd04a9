"""FastAPI receiver for Alertmanager webhooks."""

from .server import create_app

__all__ = ["create_app"]
