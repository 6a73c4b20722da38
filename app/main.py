# app/main.py
import logging

from fastapi import FastAPI

from app.api.routes import (
    appointments,
    health,
    internal,
    patients,
    recurrences,
    reports,
    sessions,
    therapists,
    transactions,
)
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.session import IS_TEST, init_db_for_startup

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """
    Application factory for the clinic scheduler service.
    """
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Backend service for a therapy clinic: patients, therapists,\n"
            "one-off and recurring appointments with their billing sessions,\n"
            "and financial summaries derived from them."
        ),
        version="0.1.0",
    )

    # Routers
    app.include_router(health.router)
    app.include_router(patients.router)
    app.include_router(therapists.router)
    app.include_router(appointments.router)
    app.include_router(recurrences.router)
    app.include_router(sessions.router)
    app.include_router(transactions.router)
    app.include_router(reports.router)
    app.include_router(internal.router)

    @app.on_event("startup")
    async def on_startup() -> None:  # pragma: no cover
        # Tests manage the schema themselves (see tests/conftest.py).
        if not IS_TEST:
            await init_db_for_startup()
        logger.info("%s started (env=%s)", settings.APP_NAME, settings.APP_ENV)

    return app


app = create_app()
