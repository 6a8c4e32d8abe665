"""
Air Gourmet flight catering order management - FastAPI backend
"""
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from catering_api import __version__
from catering_api.core.config import settings
from catering_api.core.database import SessionLocal, create_tables
from catering_api.core.errors import register_exception_handlers
from catering_api.core.logging import setup_logging
from catering_api.api import (
    activity, auth, chat, concierge, gdpr, integrations, inventory, menu, orders, payments, profile, reference,
    websocket,
)
from catering_api.services.realtime import ConnectionRegistry
from catering_api.storage import CateringStorage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_tables()
    with SessionLocal() as db:
        storage = CateringStorage(db)
        storage.ensure_guest_user()
        storage.ensure_reference_data()

    heartbeat = asyncio.create_task(app.state.connections.run_heartbeat(settings.WS_HEARTBEAT_INTERVAL))
    logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")
    try:
        yield
    finally:
        heartbeat.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await heartbeat


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Flight catering orders, kitchen inventory, notifications and payments",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.connections = ConnectionRegistry()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    for module in (auth, profile, orders, menu, inventory, concierge, payments, activity,
                   integrations, gdpr, chat, reference):
        app.include_router(module.router, prefix=settings.API_PREFIX)
    app.include_router(websocket.router)

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": "catering-api",
            "websocketClients": len(app.state.connections),
        }

    @app.get("/")
    async def root():
        return {
            "message": settings.PROJECT_NAME,
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()
