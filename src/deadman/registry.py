"""Heartbeat registry - the set of watchdog alerts currently being watched.

Every fingerprint maps to exactly one WatchedHeartbeat. Inbound webhook
events refresh entries (upsert) and the sweeper evicts the ones whose
expiry has passed (sweep_expired). Both go through a single lock that only
ever covers dict operations, never notifier I/O.

Expiry is tracked on a monotonic clock (time.monotonic by default), so
wall-clock steps (NTP corrections, manual changes) neither shorten nor
extend a grace period. Wall-clock time is only used to render timestamps.

The registry is volatile: a restart starts from an empty registry.
"""

import copy
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class WatchedHeartbeat:
    """A watchdog alert we expect to keep hearing about."""
    fingerprint: str
    payload: dict[str, Any] = field(default_factory=dict)
    expires_at: float = 0.0

    # Bookkeeping
    first_seen: float = 0.0
    last_refreshed: float = 0.0
    refresh_count: int = 0

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    @property
    def labels(self) -> dict[str, str]:
        return dict(self.payload.get("labels") or {})

    def to_dict(self, wall_offset: float = 0.0) -> dict[str, Any]:
        """Status view; `wall_offset` maps registry clock time to epoch seconds."""
        return {
            "fingerprint": self.fingerprint,
            "labels": self.labels,
            "expires_at": _iso(self.expires_at + wall_offset),
            "first_seen": _iso(self.first_seen + wall_offset),
            "last_refreshed": _iso(self.last_refreshed + wall_offset),
            "refresh_count": self.refresh_count,
        }


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class HeartbeatRegistry:
    """Fingerprint -> WatchedHeartbeat map, safe for concurrent use.

    Usage:
        registry = HeartbeatRegistry()
        registry.upsert("abc", {"labels": {...}}, expire_duration=1800)
        ...
        for heartbeat in registry.sweep_expired():
            notify(heartbeat)

    Both clocks are injectable so tests can move time without sleeping.
    """

    def __init__(
        self,
        clock: Clock = time.monotonic,
        wall_clock: Clock = time.time,
    ):
        self.clock = clock
        self.wall_clock = wall_clock
        self._heartbeats: dict[str, WatchedHeartbeat] = {}
        self._lock = threading.Lock()

    def upsert(
        self,
        fingerprint: str,
        payload: dict[str, Any],
        expire_duration: float,
        now: float | None = None,
    ) -> bool:
        """Register a new heartbeat or refresh a known one.

        Returns True when a new record was created. Zero or negative
        durations are applied as-is; such a heartbeat expires on the next
        sweep.
        """
        with self._lock:
            # Read under the lock so refreshes commit in clock order
            if now is None:
                now = self.clock()
            expires_at = now + expire_duration

            heartbeat = self._heartbeats.get(fingerprint)
            if heartbeat is None:
                self._heartbeats[fingerprint] = WatchedHeartbeat(
                    fingerprint=fingerprint,
                    payload=payload,
                    expires_at=expires_at,
                    first_seen=now,
                    last_refreshed=now,
                )
                created = True
            else:
                heartbeat.payload = payload
                heartbeat.expires_at = expires_at
                heartbeat.last_refreshed = now
                heartbeat.refresh_count += 1
                created = False

        if created:
            logger.info(f"Registering new alert {fingerprint}")
        else:
            logger.debug(f"Refreshing alert {fingerprint} expiry")
        return created

    def sweep_expired(self, now: float | None = None) -> list[WatchedHeartbeat]:
        """Evict every heartbeat whose expiry is before `now`.

        Removal and inclusion in the result happen together under the lock,
        so a heartbeat is handed out at most once per expiry. The order of
        the returned list is unspecified.
        """
        if now is None:
            now = self.clock()

        with self._lock:
            expired = [
                fp for fp, hb in self._heartbeats.items() if hb.is_expired(now)
            ]
            evicted = [self._heartbeats.pop(fp) for fp in expired]

        for heartbeat in evicted:
            logger.info(
                f"Alert {heartbeat.fingerprint} has expired and is now "
                "considered missing"
            )
        return evicted

    def get(self, fingerprint: str) -> WatchedHeartbeat | None:
        """Copy of the record for a fingerprint, if watched."""
        with self._lock:
            heartbeat = self._heartbeats.get(fingerprint)
            return copy.deepcopy(heartbeat) if heartbeat else None

    def snapshot(self) -> list[WatchedHeartbeat]:
        """Copies of all watched heartbeats, soonest expiry first."""
        with self._lock:
            heartbeats = [copy.deepcopy(hb) for hb in self._heartbeats.values()]
        return sorted(heartbeats, key=lambda hb: hb.expires_at)

    def to_dict(self) -> dict[str, Any]:
        heartbeats = self.snapshot()
        wall_offset = self.wall_clock() - self.clock()
        return {
            "watched": len(heartbeats),
            "heartbeats": [hb.to_dict(wall_offset) for hb in heartbeats],
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._heartbeats)

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return fingerprint in self._heartbeats
