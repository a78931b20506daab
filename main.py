# main.py
# Role: Application entry point for the event finance ledger.
#       Configures logging, creates database tables, builds the FastAPI app,
#       registers the ledger error handlers and all route modules.

"""
Main FastAPI app for the event finance ledger.

Here we only:
- configure structlog
- create DB tables
- create the FastAPI app
- include route modules
"""

import structlog
from fastapi import FastAPI

from config import config
from db import Base, engine
from app.logging_setup import configure_logging
from app.routes_root import router as root_router
from app.routes_event_finance import (
    register_ledger_error_handlers,
    router as event_finance_router,
)

# -------------------------------------------------------------------
# Logging & DB setup
# -------------------------------------------------------------------

configure_logging(config.log_level)
logger = structlog.get_logger(__name__)

# Create database tables (only if they don't exist yet).
Base.metadata.create_all(bind=engine)


def create_app() -> FastAPI:
    app = FastAPI(title="Event Finance Ledger")

    register_ledger_error_handlers(app)

    # Root / health routes
    app.include_router(root_router)

    # Dataset, mutations, report, export
    app.include_router(event_finance_router)

    logger.info("app_created", database_url=engine.url.render_as_string(hide_password=True))
    return app


# FastAPI application instance
app = create_app()
