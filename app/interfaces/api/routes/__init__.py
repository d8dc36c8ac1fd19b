from fastapi import FastAPI

from .alerts import router as alerts_router
from .jobs import router as jobs_router
from .judicial_movements import router as judicial_movements_router
from .notifications import router as notifications_router


def register_routes(app: FastAPI) -> None:
    """Registra todos los routers de la API en la aplicación FastAPI."""

    app.include_router(alerts_router)
    app.include_router(notifications_router)
    app.include_router(judicial_movements_router)
    app.include_router(jobs_router)
