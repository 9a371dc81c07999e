import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from avisos.config import get_settings
from avisos.infrastructure.database import engine, initialize_database
from avisos.infrastructure.notifications import get_coordinator
from avisos.infrastructure.notifications.retention import start_retention, stop_retention
from avisos.interfaces.api.routes import register_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Inicializa la base de datos y los trabajos de fondo; los libera al cerrar."""

    initialize_database()
    coordinator = get_coordinator()
    coordinator.bind_loop(asyncio.get_running_loop())
    logger.info("Channel policy: %s", coordinator.policy.as_dict())
    start_retention()
    yield
    coordinator.bind_loop(None)
    await coordinator.drain()
    stop_retention()
    engine.dispose()


def create_app() -> FastAPI:
    """Crea y configura la aplicación principal de FastAPI."""

    settings = get_settings()
    app = FastAPI(title="Avisos", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
