"""FastAPI application for the NDIS back office."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .errors import (
    CommitError,
    CommitInProgress,
    EntityNotFound,
    StoreError,
    ValidationFailed,
)

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Auto-create tables for SQLite (local dev)
    if settings.is_sqlite:
        from .database import create_all

        await create_all()
    settings.storage_root.mkdir(parents=True, exist_ok=True)
    yield


app = FastAPI(title=settings.app_title, lifespan=lifespan)


@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    return JSONResponse(status_code=422, content={"detail": str(exc), "errors": exc.errors})


@app.exception_handler(EntityNotFound)
async def entity_not_found_handler(request: Request, exc: EntityNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(CommitInProgress)
async def commit_in_progress_handler(request: Request, exc: CommitInProgress):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(CommitError)
async def commit_error_handler(request: Request, exc: CommitError):
    parsed = exc.parsed
    remaining = (
        exc.remaining.model_dump(mode="json", by_alias=True) if exc.remaining is not None else None
    )
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "collection": exc.collection,
            "operation": exc.operation,
            "title": parsed.title,
            "message": parsed.description,
            "retryable": parsed.retryable,
            "remaining": remaining,
        },
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    parsed = exc.parsed
    status = 503 if parsed.retryable else 409
    return JSONResponse(
        status_code=status,
        content={"detail": parsed.description, "title": parsed.title, "retryable": parsed.retryable},
    )


# Import and register routers
from .routers import activity, health, houses, participants, staff  # noqa: E402

app.include_router(participants.router)
app.include_router(staff.router)
app.include_router(houses.router)
app.include_router(activity.router)
app.include_router(health.router)
