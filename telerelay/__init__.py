# Uvicorn application factory <https://www.uvicorn.org/#application-factories>
import sys
from asyncio import create_task, gather
from contextlib import asynccontextmanager

from fastapi import FastAPI

from telerelay.logging import logger
from telerelay.middlewares.correlation_id import CorrelationIDMiddleware
from telerelay.middlewares.prometheus import PrometheusMiddleware
from telerelay.routing import collect_subrouters
from telerelay.settings import Settings, app_settings
from telerelay.state import RelayState
from telerelay.tasks.delivery_mover_task import delivery_mover_task
from telerelay.tasks.room_reaper_task import room_reaper_task

__version__ = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup and shutdown.

    Startup:
    - Starts the delivery mover background task
    - Starts the idle room reaper (unless ROOM_IDLE_TIMEOUT_SECONDS is 0)
    - Initializes the app_info Prometheus metric

    Shutdown:
    1. Cancels background tasks and waits for them, using gather() with
       return_exceptions=True to absorb CancelledError
    2. Closes every remaining relay connection
    """
    relay: RelayState = app.state.relay
    settings = relay.settings
    tasks = app.state.background_tasks

    logger.info("Application startup initiated")

    tasks.append(
        create_task(
            delivery_mover_task(relay.deliveries, settings.DELIVERY_TICK_SECONDS)
        )
    )
    logger.info("Created task for delivery mover")

    if settings.room_expiry_enabled:
        tasks.append(
            create_task(
                room_reaper_task(
                    relay.broker,
                    settings.ROOM_IDLE_TIMEOUT_SECONDS,
                    settings.ROOM_REAPER_INTERVAL_SECONDS,
                )
            )
        )
        logger.info("Created task for idle room reaper")

    from telerelay.utils.metrics import app_info

    app_info.labels(
        version=__version__,
        python_version=f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        environment=settings.ENV.value,
    ).set(1)

    yield

    logger.info("Application shutdown initiated")

    if tasks:
        logger.info(f"Cancelling {len(tasks)} background tasks")
        for task in tasks:
            task.cancel()
        await gather(*tasks, return_exceptions=True)
        tasks.clear()
        logger.info("All background tasks completed")

    relay.close()
    logger.info("Application shutdown complete")


def application(settings: Settings | None = None) -> FastAPI:
    """
    Initializes and configures the FastAPI application.

    Each application owns a fresh `RelayState` (connection registry, room
    broker, delivery tracker) on `app.state.relay`. Routers are collected
    from `api/http` and `api/ws/consumers`.

    Middlewares execute in REVERSE order of registration:
    CorrelationIDMiddleware -> PrometheusMiddleware.
    """
    settings = settings or app_settings

    app = FastAPI(
        title="Telehealth signaling relay",
        description="WebRTC signaling, in-call chat and delivery tracking rooms",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.relay = RelayState(settings)
    app.state.background_tasks = []

    app.include_router(collect_subrouters())

    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(CorrelationIDMiddleware)

    return app


app = application()  # Need for fastapi cli
