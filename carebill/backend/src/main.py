"""Entrypoint for the FastAPI application."""

import os
from dotenv import load_dotenv

# Load .env locally only; deployed environments inject variables directly
env_path = os.path.join(os.path.dirname(__file__), "../.env")
if os.path.exists(env_path):
    load_dotenv(dotenv_path=os.path.abspath(env_path))

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import (
    bank_holidays,
    credit_notes,
    health,
    invoices,
    rate_cards,
    reconciliation,
    reports,
)
from .core.errors import BillingError
from .core.logging import configure_logging

LOGGER = structlog.get_logger(__name__)


async def billing_error_handler(request: Request, exc: BillingError) -> JSONResponse:
    """Translate domain errors into JSON responses with their HTTP status."""

    if exc.status_code >= 500:
        LOGGER.error("billing_error", path=request.url.path, error=str(exc))
    else:
        LOGGER.info(
            "billing_request_rejected",
            path=request.url.path,
            status_code=exc.status_code,
            error=str(exc),
            error_type=type(exc).__name__,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="CareBill", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(BillingError, billing_error_handler)

    app.include_router(health.router, prefix="/api")
    app.include_router(reconciliation.router, prefix="/api")
    app.include_router(invoices.router, prefix="/api")
    app.include_router(credit_notes.router, prefix="/api")
    app.include_router(rate_cards.router, prefix="/api")
    app.include_router(bank_holidays.router, prefix="/api")
    app.include_router(reports.router, prefix="/api")

    return app


app = create_app()
