"""FastAPI application entry point."""

import logging
import typing as t
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)

from kitchentory.core.config import SETTINGS
from kitchentory.core.database import (
    ENGINE,
    close_db,
    create_session_maker,
    init_db,
)
from kitchentory.core.globals import OPENAPI_TAGS
from kitchentory.routers import api_router
from kitchentory.services import (
    AlertStore,
    ExpirationAlertEngine,
    InventoryProvider,
    NotificationDispatcher,
    NotificationPlatform,
    PreferenceStore,
    UnavailableNotificationPlatform,
    build_email_sender,
    check_expiring_items_task,
    schedule_alert_jobs,
)
from kitchentory.services.alert_engine import PERSISTENCE_ERRORS

logging.basicConfig(
    level=logging.DEBUG if SETTINGS.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
LOGGER: logging.Logger = logging.getLogger(__name__)


def build_alert_engine(
    session_maker: async_sessionmaker[AsyncSession],
    platform: NotificationPlatform | None = None,
) -> ExpirationAlertEngine:
    """Wire an alert engine to its stores and dispatcher.

    Args:
        session_maker (async_sessionmaker[AsyncSession]):
            Factory for database sessions.
        platform (NotificationPlatform | None):
            Platform notification capability, none by default.

    Returns:
        ExpirationAlertEngine: The engine, not yet loaded.
    """
    return ExpirationAlertEngine(
        store=AlertStore(session_maker),
        preference_store=PreferenceStore(session_maker),
        dispatcher=NotificationDispatcher(
            platform or UnavailableNotificationPlatform(),
            timeout_seconds=SETTINGS.notification_timeout_seconds,
            email_sender=build_email_sender(),
        ),
    )


def create_application(
    platform: NotificationPlatform | None = None,
    inventory_provider: InventoryProvider | None = None,
    engine: AsyncEngine = ENGINE,
) -> FastAPI:
    """Create the FastAPI application hosting the alert engine.

    Args:
        platform (NotificationPlatform | None):
            Platform notification capability.
        inventory_provider (InventoryProvider | None):
            Source of inventory snapshots for scheduled checks.
        engine (AsyncEngine):
            Database engine for the alert store.

    Returns:
        FastAPI: The configured application.
    """
    scheduler: AsyncIOScheduler = AsyncIOScheduler()

    @asynccontextmanager
    async def lifespan(application: FastAPI) -> t.AsyncGenerator[None, None]:
        """Application lifespan events.

        args:
            application (FastAPI): The FastAPI application instance.
        """
        LOGGER.info("Starting Kitchentory alert engine...")
        try:
            await init_db(engine)
            LOGGER.info("Database tables initialized")
        except PERSISTENCE_ERRORS:
            LOGGER.exception("Database unavailable, alerts kept in memory")

        alert_engine: ExpirationAlertEngine = build_alert_engine(
            create_session_maker(engine), platform
        )
        await alert_engine.load()
        application.state.alert_engine = alert_engine

        schedule_alert_jobs(scheduler, alert_engine, inventory_provider)
        scheduler.start()

        if inventory_provider is not None:
            await check_expiring_items_task(alert_engine, inventory_provider)

        yield

        LOGGER.info("Shutting down Kitchentory alert engine...")
        scheduler.shutdown(wait=False)
        await close_db(engine)
        LOGGER.info("Cleanup complete")

    application: FastAPI = FastAPI(
        title=SETTINGS.app_name,
        description="Kitchentory - Expiration alerts for your kitchen",
        version=SETTINGS.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=OPENAPI_TAGS,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=SETTINGS.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(api_router)

    @application.get("/health", tags=["Health"])
    async def health_check(request: Request) -> t.Dict[str, str]:
        """Health check endpoint for monitoring.

        Returns:
            t.Dict[str, str]: The health status, "degraded" while the alert
                store is unavailable.
        """
        alert_engine: ExpirationAlertEngine = request.app.state.alert_engine
        return {"status": "degraded" if alert_engine.degraded else "healthy"}

    return application


APPLICATION: FastAPI = create_application()
