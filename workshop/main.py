"""
Workshop API - Main Application

Garage management backend for the workshop dashboard: customers, vehicles,
technicians, jobs, inventory, invoices, suppliers, expenses and the
notification feed.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from workshop import __version__
from workshop.api.deps import Mailer
from workshop.api.router import api_router
from workshop.config import settings
from workshop.database import init_db
from workshop.exceptions import WorkshopError, create_exception_handlers
from workshop.middleware import CorrelationIdMiddleware, CorrelationLogFilter
from workshop.services.notifications import NotificationDispatcher
from workshop.tasks.notification_purge import start_purge_scheduler, stop_purge_scheduler

# Import all models to register them with SQLAlchemy metadata before init_db()
from workshop import models  # noqa: F401


def configure_logging() -> None:
    """Root logging with the request ID stamped on every record."""
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s",
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(CorrelationLogFilter())


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, start the notification worker and the purge job."""
    logger.info("Workshop API %s starting (%s)", __version__, settings.ENVIRONMENT)

    await init_db()
    logger.info("Schema ready at %s", settings.DATABASE_URL.split("///", 1)[-1])

    app.state.notifications.start()
    if settings.NOTIFICATION_PURGE_ENABLED:
        start_purge_scheduler()

    yield

    logger.info("Workshop API stopping")
    stop_purge_scheduler()
    await app.state.notifications.stop()


docs_url = "/docs" if settings.DOCS_ENABLED else None
redoc_url = "/redoc" if settings.DOCS_ENABLED else None

app = FastAPI(
    title="Workshop API",
    description="Garage workshop management: jobs, inventory and invoicing",
    version=__version__,
    docs_url=docs_url,
    redoc_url=redoc_url,
    lifespan=lifespan,
)

app.state.notifications = NotificationDispatcher()

allowed_origins = settings.cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

handlers = create_exception_handlers(allowed_origins)
app.add_exception_handler(WorkshopError, handlers["workshop"])
app.add_exception_handler(StarletteHTTPException, handlers["http"])
app.add_exception_handler(RequestValidationError, handlers["validation"])
app.add_exception_handler(IntegrityError, handlers["integrity"])
app.add_exception_handler(Exception, handlers["generic"])

app.include_router(api_router)


@app.get("/")
async def root():
    """Service name, version and where to look next."""
    response = {
        "name": "Workshop API",
        "version": __version__,
        "health": "/health",
    }
    if settings.DOCS_ENABLED:
        response["docs"] = "/docs"
    return response


@app.get("/health")
async def health_check(mailer: Mailer):
    """Liveness probe for the dashboard and process supervisors."""
    return {
        "status": "healthy",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "email": mailer.get_status(),
    }


# For running with uvicorn directly (development only)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "workshop.main:app",
        host="0.0.0.0",
        port=5000,
        reload=settings.DEBUG,
    )
