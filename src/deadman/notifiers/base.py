"""Notifier base class and errors."""

from abc import ABC, abstractmethod
from typing import Any

import httpx

from deadman.registry import WatchedHeartbeat


class NotifierError(Exception):
    """Base class for notifier failures."""


class NotifierSetupError(NotifierError):
    """A configured notifier could not be initialized (bad credentials, unknown target)."""


class NotificationError(NotifierError):
    """A single notification could not be delivered."""


class Notifier(ABC):
    """A transport that tells humans a heartbeat went missing.

    Implementations wrap one vendor API. The sweeper calls `notify` once per
    evicted heartbeat; failures are reported by raising NotificationError
    and are never retried.
    """

    name: str = "notifier"

    def __init__(
        self,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.timeout = timeout
        self._http = http_client

    @classmethod
    @abstractmethod
    def from_settings(cls, settings: Any) -> "Notifier | None":
        """Build from settings, or return None when not configured."""
        ...

    @abstractmethod
    async def notify(self, heartbeat: WatchedHeartbeat) -> None:
        """Deliver a missing-heartbeat notification."""
        ...

    async def setup(self) -> None:
        """Validate credentials at startup. Raises NotifierSetupError."""

    async def _client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def close(self) -> None:
        if self._http:
            await self._http.aclose()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
