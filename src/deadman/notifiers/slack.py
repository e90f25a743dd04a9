"""Slack notifier - posts a message to a channel via the Slack Web API.

Setup:
1. Create a Slack app with the `chat:write` and `channels:read` scopes
2. Install it to the workspace and copy the bot token (xoxb-...)
3. Invite the bot to the target channel
4. Set SLACK_TOKEN and SLACK_CHANNEL (name or channel ID)
"""

import logging
import re
from typing import Any

import httpx

from deadman.notifiers.base import (
    NotificationError,
    Notifier,
    NotifierSetupError,
)
from deadman.notifiers.formatting import format_labels, pretty_alert
from deadman.registry import WatchedHeartbeat

logger = logging.getLogger(__name__)

_CHANNEL_ID = re.compile(r"^[CG][A-Z0-9]{8,}$")

HEADER_TEXT = (
    ":skull: *This is an alert !* :skull: \n"
    "A watchdog alert has not been refreshed for too long.\n"
    "Please check monitoring stack status."
)


class SlackNotifier(Notifier):
    """Slack Web API transport."""

    name = "slack"
    API_BASE = "https://slack.com/api"

    def __init__(
        self,
        token: str,
        channel: str = "general",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(timeout=timeout, http_client=http_client)
        self.token = token
        self.channel = channel.lstrip("#")
        self.channel_id: str = ""

    @classmethod
    def from_settings(cls, settings: Any) -> "SlackNotifier | None":
        if not settings.slack_token:
            return None
        return cls(
            token=settings.slack_token,
            channel=settings.slack_channel,
            timeout=settings.notify_timeout,
        )

    async def _api_call(
        self,
        method: str,
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Call a Web API method. Raises httpx.HTTPError on transport failure."""
        client = await self._client()
        url = f"{self.API_BASE}/{method}"
        headers = {"Authorization": f"Bearer {self.token}"}
        if data is not None:
            resp = await client.post(url, json=data, headers=headers)
        else:
            resp = await client.get(url, params=params, headers=headers)
        resp.raise_for_status()
        return resp.json()

    async def setup(self) -> None:
        """Check the token and resolve the target channel ID."""
        try:
            auth = await self._api_call("auth.test", data={})
        except httpx.HTTPError as e:
            raise NotifierSetupError(f"Impossible to initialize Slack client: {e}") from e
        if not auth.get("ok"):
            raise NotifierSetupError(
                f"Impossible to initialize Slack client: {auth.get('error', 'unknown error')}"
            )

        if _CHANNEL_ID.match(self.channel):
            self.channel_id = self.channel
        else:
            self.channel_id = await self._find_channel_id(self.channel)

        if not self.channel_id:
            raise NotifierSetupError(
                f"Impossible to find target Slack channel: {self.channel}")

        logger.info(
            f"Slack notifier initialized on channel {self.channel} ({self.channel_id})")

    async def _find_channel_id(self, name: str) -> str:
        """Walk all conversations.list pages looking for `name`."""
        cursor = ""
        while True:
            params: dict[str, Any] = {
                "types": "public_channel,private_channel",
                "exclude_archived": "true",
                "limit": 200,
            }
            if cursor:
                params["cursor"] = cursor
            try:
                page = await self._api_call("conversations.list", params=params)
            except httpx.HTTPError as e:
                raise NotifierSetupError(f"Unable to list Slack channels: {e}") from e
            if not page.get("ok"):
                raise NotifierSetupError(
                    f"Unable to list Slack channels: {page.get('error', 'unknown error')}"
                )

            for channel in page.get("channels", []):
                if channel.get("name", "").lower() == name.lower():
                    return channel["id"]

            cursor = page.get("response_metadata", {}).get("next_cursor", "")
            if not cursor:
                return ""

    def build_message(self, heartbeat: WatchedHeartbeat) -> dict[str, Any]:
        """chat.postMessage body for a missing heartbeat."""
        labels = format_labels(heartbeat, prefix="- ")
        return {
            "channel": self.channel_id or self.channel,
            "icon_emoji": ":skull:",
            "text": f"Watchdog alert {heartbeat.fingerprint} is missing",
            "blocks": [
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": HEADER_TEXT},
                },
                {
                    "type": "section",
                    "text": {
                        "type": "mrkdwn",
                        "text": f"*Lost watchdog labels:*\n```{labels}```",
                    },
                },
            ],
            "attachments": [
                {
                    "title": "Lost alert full description",
                    "text": f"```{pretty_alert(heartbeat)}```",
                    "color": "#a10606",
                },
            ],
        }

    async def notify(self, heartbeat: WatchedHeartbeat) -> None:
        try:
            result = await self._api_call(
                "chat.postMessage", data=self.build_message(heartbeat))
        except httpx.HTTPError as e:
            raise NotificationError(f"Slack API call failed: {e}") from e
        if not result.get("ok"):
            raise NotificationError(
                f"Slack API error: {result.get('error', 'unknown error')}")
