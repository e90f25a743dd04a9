"""PagerDuty notifier - triggers an incident through the Events API (v1).

Only a service integration key is needed (PD_TOKEN); there is no session
to open, so setup never touches the network.
"""

import logging
from typing import Any

import httpx

from deadman.notifiers.base import NotificationError, Notifier
from deadman.notifiers.formatting import format_labels, pretty_alert
from deadman.registry import WatchedHeartbeat

logger = logging.getLogger(__name__)

DESCRIPTION = "Watchdog monitored alert is missing for too long"


class PagerDutyNotifier(Notifier):
    """PagerDuty Events API transport."""

    name = "pagerduty"
    EVENTS_URL = "https://events.pagerduty.com/generic/2010-04-15/create_event.json"

    def __init__(
        self,
        service_key: str,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(timeout=timeout, http_client=http_client)
        self.service_key = service_key

    @classmethod
    def from_settings(cls, settings: Any) -> "PagerDutyNotifier | None":
        if not settings.pagerduty_token:
            return None
        return cls(
            service_key=settings.pagerduty_token,
            timeout=settings.notify_timeout,
        )

    async def setup(self) -> None:
        logger.info("Pagerduty notifier initialized")

    def build_event(self, heartbeat: WatchedHeartbeat) -> dict[str, Any]:
        details = (
            "A MONITORED WATCHDOG ALERT IS MISSING !\n\nAlert labels:\n"
            + format_labels(heartbeat)
            + "\n"
            + pretty_alert(heartbeat)
        )
        return {
            "service_key": self.service_key,
            "event_type": "trigger",
            "incident_key": f"deadman/{heartbeat.fingerprint}",
            "description": DESCRIPTION,
            "client": "deadman",
            "details": details,
        }

    async def notify(self, heartbeat: WatchedHeartbeat) -> None:
        client = await self._client()
        try:
            resp = await client.post(self.EVENTS_URL, json=self.build_event(heartbeat))
        except httpx.HTTPError as e:
            raise NotificationError(f"PagerDuty API call failed: {e}") from e

        if resp.status_code >= 400:
            raise NotificationError(
                f"PagerDuty API error: {resp.status_code} {resp.text}")
