"""Applies Alertmanager webhook batches to the heartbeat registry."""

import logging
from dataclasses import dataclass, field

from deadman.models import WebhookMessage
from deadman.registry import HeartbeatRegistry

logger = logging.getLogger(__name__)

FIRING = "firing"


class WebhookNotFiring(Exception):
    """The batch status is not "firing"; nothing was applied."""

    def __init__(self, status: str):
        super().__init__(f"Webhook status is {status!r}, expected {FIRING!r}")
        self.status = status


@dataclass
class IngestResult:
    """What a batch did to the registry."""
    created: list[str] = field(default_factory=list)
    refreshed: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.refreshed)


def ingest(
    registry: HeartbeatRegistry,
    message: WebhookMessage,
    expire_duration: float,
) -> IngestResult:
    """Register or refresh every alert of a firing batch.

    A batch whose status is not exactly "firing" is rejected as a whole
    before any alert is looked at. Alerts of an accepted batch are applied
    one by one and independently of each other.
    """
    if message.status != FIRING:
        raise WebhookNotFiring(message.status)

    result = IngestResult()
    for alert in message.alerts:
        if registry.upsert(alert.fingerprint, alert.to_payload(), expire_duration):
            result.created.append(alert.fingerprint)
        else:
            result.refreshed.append(alert.fingerprint)

    logger.debug(
        f"Webhook applied: {len(result.created)} new, "
        f"{len(result.refreshed)} refreshed"
    )
    return result
