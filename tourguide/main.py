from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tourguide.api.errors import register_exception_handlers
from tourguide.api.v1.router import router as api_v1_router
from tourguide.config.settings import Settings, get_settings
from tourguide.core.clock import Clock, SystemClock
from tourguide.core.logging import get_logger, setup_logging
from tourguide.core.middleware import register_middlewares
from tourguide.core.security import JWTManager
from tourguide.db.init_db import init_db
from tourguide.db.session import Database
from tourguide.services.notification import (
    NotificationService,
    NotificationStore,
    build_notification_store,
)
from tourguide.services.payment.gateway import PaymentGateway, StripePaymentGateway

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    payment_gateway: Optional[PaymentGateway] = None,
    notification_store: Optional[NotificationStore] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """
    Application factory for the FastAPI app.

    - Configures title, version, debug mode from Settings.
    - Builds the collaborators (database, payment gateway, notification
      fan-out, clock) once and keeps them on ``app.state``.
    - Registers CORS, core middleware, and exception handlers.
    - Includes the versioned API router under /api/v1.

    Any collaborator passed in is used as-is, which is how tests swap in
    an in-memory database or a fake payment gateway.
    """
    settings = settings or get_settings()
    setup_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version=settings.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    clock = clock or SystemClock()
    store = notification_store or build_notification_store(
        settings.NOTIFICATION_BACKEND,
        settings.NOTIFICATION_QUEUE_SIZE,
        settings.get_redis_url(),
    )

    app.state.settings = settings
    app.state.clock = clock
    app.state.database = database or Database.from_settings(settings)
    app.state.payment_gateway = payment_gateway or StripePaymentGateway(
        settings.STRIPE_SECRET_KEY,
        settings.STRIPE_WEBHOOK_SECRET,
    )
    app.state.notification_service = NotificationService(store, clock)
    app.state.jwt_manager = JWTManager(settings.JWT_SECRET_KEY, settings.JWT_ALGORITHM)

    origins = settings.get_cors_origins() or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Credentials cannot be combined with a wildcard origin
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middlewares(app)
    register_exception_handlers(app)

    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    @app.on_event("startup")
    async def on_startup() -> None:
        # Development convenience; production schemas are migrated
        if not settings.is_production():
            init_db(app.state.database)
        logger.info(
            "Application started",
            extra={"environment": settings.ENVIRONMENT, "notification_backend": settings.NOTIFICATION_BACKEND},
        )

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        app.state.database.dispose()

    return app


app = create_app()
