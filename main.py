import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.application.use_cases.jobs import JOBS
from app.config import get_settings
from app.infrastructure.database import engine, initialize_database
from app.infrastructure.notifications import BrowserChannel, ConnectionRegistry
from app.infrastructure.scheduler import NotificationScheduler
from app.interfaces.api.routes import register_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Inicializa la base de datos y el planificador, y libera los recursos al cerrar."""

    initialize_database()
    scheduler: NotificationScheduler | None = None
    if get_settings().scheduler_enabled:
        scheduler = NotificationScheduler(JOBS, channel=app.state.browser_channel)
        await scheduler.start()
    app.state.scheduler = scheduler
    try:
        yield
    finally:
        if scheduler is not None:
            await scheduler.stop()
        engine.dispose()


def create_app() -> FastAPI:
    """Crea y configura la aplicación principal de FastAPI."""

    app = FastAPI(lifespan=lifespan)

    # Autoriza peticiones desde la aplicación cliente.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:4200"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    registry = ConnectionRegistry()
    app.state.connection_registry = registry
    app.state.browser_channel = BrowserChannel(registry)

    register_routes(app)
    return app


app = create_app()
