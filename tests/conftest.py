"""Shared fixtures: a controllable clock and recording notifiers."""

import asyncio

import pytest

from deadman.notifiers.base import NotificationError, Notifier


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class RecordingNotifier(Notifier):
    """Notifier that remembers what it was asked to send."""

    name = "recording"

    def __init__(self, name: str = "recording"):
        super().__init__()
        self.name = name
        self.sent: list[str] = []

    @classmethod
    def from_settings(cls, settings):
        return cls()

    async def notify(self, heartbeat) -> None:
        self.sent.append(heartbeat.fingerprint)


class FailingNotifier(RecordingNotifier):
    async def notify(self, heartbeat) -> None:
        self.sent.append(heartbeat.fingerprint)
        raise NotificationError("service down")


class HangingNotifier(RecordingNotifier):
    async def notify(self, heartbeat) -> None:
        self.sent.append(heartbeat.fingerprint)
        await asyncio.sleep(3600)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    """Fresh registry driven by the fake clock."""
    from deadman.registry import HeartbeatRegistry
    return HeartbeatRegistry(clock=clock)
