"""Routes package for the deadman receiver."""

from deadman.web.routes import status, webhook

__all__ = ["status", "webhook"]
