"""
FastAPI application for the grooming scheduler.

Endpoints are plain ``def`` functions: FastAPI runs them in its worker
thread pool, each with its own database session, so a slow query never
blocks the event loop.
"""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from grooming_scheduler.api.routers import (
    archive,
    availability,
    bookings,
    catalog,
    lifecycle,
    templates,
)
from grooming_scheduler.config import settings
from grooming_scheduler.database import init_db
from grooming_scheduler.errors import DependencyError, SchedulingError
from grooming_scheduler.logging_context import set_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    init_db()
    logger.info("Database tables ready")
    yield
    logger.info("Application shutting down...")


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info(
            "%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message,
        )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("%s %s: data store unavailable: %s", request.method, request.url.path, exc)
    error = DependencyError("Data store unavailable, retry later")
    return JSONResponse(status_code=error.http_status, content=error.to_dict())


def create_app(run_migrations: bool = True) -> FastAPI:
    """Build the application. Tests pass ``run_migrations=False`` and own the schema."""
    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        lifespan=lifespan if run_migrations else None,
    )

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or f"REQ-{uuid.uuid4().hex[:12]}"
        set_request_id(request_id)
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    app.add_exception_handler(SchedulingError, scheduling_error_handler)
    app.add_exception_handler(OperationalError, operational_error_handler)

    app.include_router(catalog.router)
    app.include_router(templates.router)
    app.include_router(availability.router)
    app.include_router(bookings.router)
    app.include_router(lifecycle.router)
    app.include_router(archive.router)

    @app.get("/health")
    def health():
        return {"status": "ok", "app": settings.app_name}

    return app


app = create_app()
