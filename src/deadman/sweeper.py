"""Expiry sweeper - evicts missing heartbeats and fans out notifications.

Every `interval_s` the sweeper asks the registry for expired heartbeats and
hands each one to every configured notifier. Each (heartbeat, notifier)
pair runs as its own task with its own timeout, so a slow or failing
transport neither delays the next tick nor affects other notifications.
"""

import asyncio
import logging
from typing import Any, Callable

from deadman.notifiers.base import Notifier
from deadman.registry import HeartbeatRegistry, WatchedHeartbeat

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Recurring expiry check over a HeartbeatRegistry.

    Usage:
        sweeper = ExpirySweeper(registry, notifiers, interval_s=60)
        await sweeper.start()
        # ... heartbeats expire, notifications go out ...
        await sweeper.stop()

    Tests can skip start() and drive sweeps with tick(now=...) + drain().
    """

    def __init__(
        self,
        registry: HeartbeatRegistry,
        notifiers: list[Notifier] | None = None,
        interval_s: float = 60.0,
        notify_timeout_s: float = 30.0,
        clock: Callable[[], float] | None = None,
    ):
        self.registry = registry
        self.notifiers = list(notifiers or [])
        self.interval_s = interval_s
        self.notify_timeout_s = notify_timeout_s
        self.clock = clock or registry.clock

        self._running = False
        self._loop_task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()

        # Stats
        self.ticks = 0
        self.evicted = 0
        self.sent = 0
        self.failed = 0

    async def start(self) -> None:
        """Start the recurring sweep."""
        if self._running:
            return
        self._running = True
        self._loop_task = asyncio.create_task(self._sweep_loop())
        logger.debug(f"Expiry sweeper started (interval {self.interval_s}s)")

    async def stop(self) -> None:
        """Stop sweeping and cancel notifications still in flight."""
        self._running = False
        if self._loop_task and not self._loop_task.done():
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
        self._loop_task = None

        pending = list(self._inflight)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    async def tick(self, now: float | None = None) -> list[WatchedHeartbeat]:
        """Run one sweep and schedule notifications for what it evicted.

        Returns the evicted heartbeats without waiting for delivery.
        """
        if now is None:
            now = self.clock()

        evicted = self.registry.sweep_expired(now)
        self.ticks += 1
        self.evicted += len(evicted)

        for heartbeat in evicted:
            if not self.notifiers:
                logger.warning(
                    f"Alert {heartbeat.fingerprint} is missing but no notifier is configured"
                )
                continue
            logger.info(
                f"Triggering notifiers for missing alert {heartbeat.fingerprint}")
            for notifier in self.notifiers:
                task = asyncio.create_task(self._notify(notifier, heartbeat))
                self._inflight.add(task)
                task.add_done_callback(self._inflight.discard)

        return evicted

    async def drain(self) -> None:
        """Wait until every scheduled notification has finished."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _sweep_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval_s)
            try:
                await self.tick()
            except Exception:
                logger.exception("Expiry sweep failed")

    async def _notify(self, notifier: Notifier, heartbeat: WatchedHeartbeat) -> None:
        """One best-effort delivery attempt; never raises."""
        try:
            await asyncio.wait_for(
                notifier.notify(heartbeat), timeout=self.notify_timeout_s)
        except asyncio.TimeoutError:
            self.failed += 1
            logger.error(
                f"Error sending alert {heartbeat.fingerprint} {notifier.name} "
                f"notification: timed out after {self.notify_timeout_s}s"
            )
        except Exception as e:
            self.failed += 1
            logger.error(
                f"Error sending alert {heartbeat.fingerprint} {notifier.name} "
                f"notification: {e}"
            )
        else:
            self.sent += 1
            logger.info(
                f"Alert {heartbeat.fingerprint} notified via {notifier.name}")

    def get_status(self) -> dict[str, Any]:
        """Sweeper status for the /status endpoint."""
        return {
            "running": self._running,
            "interval_s": self.interval_s,
            "notifiers": [n.name for n in self.notifiers],
            "ticks": self.ticks,
            "evicted": self.evicted,
            "notifications_sent": self.sent,
            "notifications_failed": self.failed,
            "inflight": len(self._inflight),
        }
