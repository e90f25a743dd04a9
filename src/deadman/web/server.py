"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from deadman import __version__
from deadman.config import Settings
from deadman.notifiers import Notifier, close_notifiers
from deadman.registry import HeartbeatRegistry
from deadman.sweeper import ExpirySweeper


def create_app(
    settings: Settings | None = None,
    registry: HeartbeatRegistry | None = None,
    notifiers: list[Notifier] | None = None,
    sweeper: ExpirySweeper | None = None,
) -> FastAPI:
    """Build the receiver app.

    The registry and sweeper live on `app.state`; the sweeper only runs
    while the app lifespan is active (i.e. under uvicorn, or inside a
    `with TestClient(app)` block).
    """
    from deadman.web.routes import status, webhook

    settings = settings or Settings()
    registry = registry if registry is not None else HeartbeatRegistry()
    notifiers = list(notifiers or [])
    if sweeper is None:
        sweeper = ExpirySweeper(
            registry,
            notifiers,
            interval_s=settings.check_interval,
            notify_timeout_s=settings.notify_timeout,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await sweeper.start()
        try:
            yield
        finally:
            await sweeper.stop()
            await close_notifiers(sweeper.notifiers)

    app = FastAPI(
        title="Deadman Receiver",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.sweeper = sweeper

    app.include_router(webhook.router)
    app.include_router(status.router)
    return app
