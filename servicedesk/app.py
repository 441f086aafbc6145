"""FastAPI application for the service desk."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .logging_config import configure_logging
from .services.audit_svc import EntityNotFound, MutationFailed, UnknownColumn

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    # Auto-create tables for SQLite (local dev); PostgreSQL uses Alembic migrations
    if settings.is_sqlite:
        from .database import engine
        from .models import Base
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    log.info("Service desk started (%s)", settings.environment)
    yield


app = FastAPI(title=settings.app_title, lifespan=lifespan)


@app.exception_handler(EntityNotFound)
async def entity_not_found_handler(request: Request, exc: EntityNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(UnknownColumn)
async def unknown_column_handler(request: Request, exc: UnknownColumn):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(MutationFailed)
async def mutation_failed_handler(request: Request, exc: MutationFailed):
    log.error("Mutation failed on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# Import and register routers
from .routers import activity, billing, clients, health, tickets  # noqa: E402

app.include_router(health.router)
app.include_router(clients.router)
app.include_router(tickets.router)
app.include_router(billing.router)
app.include_router(activity.router)
