from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from feedesk.config import get_settings
from feedesk.dependencies.services import get_backend_client_cached
from feedesk.health import router as health_router
from feedesk.mock_data_view import router as mock_data_router
from feedesk.routers.invoices import router as invoices_router
from feedesk.routers.parent import router as parent_router


def configure_logging() -> None:
    """Ensure application logs use the INFO level by default."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(logging.INFO)


configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages application startup and shutdown events.
    """
    settings = get_settings()
    settings_snapshot = settings.model_dump(exclude={"backend_anon_key"})
    logger.info("Application settings on startup: %s", settings_snapshot)

    client = get_backend_client_cached()
    if client.use_mock_data:
        logger.info("No backend configured; serving the in-memory mock store.")
    logger.info("Application startup complete.")

    try:
        yield
    finally:
        logger.info("Closing backend client connection.")
        await client.close()
        logger.info("Application shutdown complete.")


settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin).rstrip("/") for origin in settings.cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(invoices_router, prefix="/invoices")
app.include_router(parent_router, prefix="/parent")
app.include_router(health_router)
app.include_router(mock_data_router)
