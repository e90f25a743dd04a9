"""Alertmanager webhook payload schema.

Mirrors the JSON Alertmanager posts to webhook receivers (version "4"):

    {
      "version": "4",
      "status": "firing",
      "receiver": "deadman",
      "alerts": [
        {"status": "firing", "fingerprint": "abc", "labels": {...}, ...}
      ],
      ...
    }

Only `status`, `alerts` and each alert's `fingerprint` are required;
everything else is kept for the expiry notification.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Alert(BaseModel):
    """A single alert inside a webhook batch."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    fingerprint: str
    status: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    starts_at: str | None = Field(default=None, alias="startsAt")
    ends_at: str | None = Field(default=None, alias="endsAt")
    generator_url: str | None = Field(default=None, alias="generatorURL")

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict kept in the registry for notifications."""
        return self.model_dump(by_alias=True, exclude_none=True)


class WebhookMessage(BaseModel):
    """A batch of alerts sharing one group status."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    status: str
    alerts: list[Alert]
    version: str = ""
    receiver: str = ""
    group_key: str = Field(default="", alias="groupKey")
    group_labels: dict[str, str] = Field(default_factory=dict, alias="groupLabels")
    common_labels: dict[str, str] = Field(default_factory=dict, alias="commonLabels")
    common_annotations: dict[str, str] = Field(
        default_factory=dict, alias="commonAnnotations")
    external_url: str = Field(default="", alias="externalURL")
