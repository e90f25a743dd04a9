"""Notification transports for missing heartbeats.

Exports:
    Notifier - Transport interface
    SlackNotifier, PagerDutyNotifier - Concrete transports
    build_notifiers - Instantiate every configured transport
    setup_notifiers - Authenticate them at startup
"""

import logging
from typing import Any

from .base import Notifier, NotifierError, NotifierSetupError, NotificationError
from .pagerduty import PagerDutyNotifier
from .slack import SlackNotifier

logger = logging.getLogger(__name__)

# Adding a transport means adding it here
NOTIFIER_TYPES: list[type[Notifier]] = [SlackNotifier, PagerDutyNotifier]


def build_notifiers(settings: Any) -> list[Notifier]:
    """Instantiate every transport whose credentials are configured."""
    notifiers = []
    for notifier_type in NOTIFIER_TYPES:
        notifier = notifier_type.from_settings(settings)
        if notifier is not None:
            notifiers.append(notifier)
    return notifiers


async def setup_notifiers(notifiers: list[Notifier]) -> None:
    """Run startup checks on every notifier; the first failure is fatal."""
    for notifier in notifiers:
        try:
            await notifier.setup()
        except NotifierSetupError:
            raise
        except Exception as e:
            raise NotifierSetupError(f"{notifier.name} setup failed: {e}") from e


async def close_notifiers(notifiers: list[Notifier]) -> None:
    for notifier in notifiers:
        try:
            await notifier.close()
        except Exception as e:
            logger.warning(f"Failed to close {notifier.name} notifier: {e}")


__all__ = [
    "NOTIFIER_TYPES",
    "Notifier",
    "NotifierError",
    "NotifierSetupError",
    "NotificationError",
    "PagerDutyNotifier",
    "SlackNotifier",
    "build_notifiers",
    "close_notifiers",
    "setup_notifiers",
]
