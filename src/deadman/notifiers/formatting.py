"""Text helpers shared by the notifiers."""

import json

from deadman.registry import WatchedHeartbeat


def sorted_labels(heartbeat: WatchedHeartbeat) -> list[tuple[str, str]]:
    return sorted(heartbeat.labels.items())


def format_labels(heartbeat: WatchedHeartbeat, prefix: str = "") -> str:
    """One `name = value` line per label, sorted by name."""
    return "".join(
        f"{prefix}{name} = {value}\n" for name, value in sorted_labels(heartbeat)
    )


def pretty_alert(heartbeat: WatchedHeartbeat) -> str:
    """The last received alert as indented JSON."""
    return json.dumps(heartbeat.payload, indent=4, sort_keys=True, default=str)
