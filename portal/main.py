"""Application wiring for the HaaS portal API.

Configuration, logging, middleware, error handlers and routers are assembled
here once at import time. Tables are created and the hardware pools seeded on
startup, so a fresh database is usable as soon as the server answers.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from .core.config import settings
from .core.errors import (
    LedgerError,
    http_exception_handler,
    ledger_exception_handler,
    validation_exception_handler,
)
from .core.logging import configure_logging
from .db.seed import init_db
from .db.session import engine
from .middlewares import RequestIdMiddleware
from .routers import api_auth, api_hardware, api_projects

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger("portal")

app = FastAPI(title=settings.APP_NAME)

# Session cookie carries the logged-in user between requests.
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.APP_SECRET,
    session_cookie=settings.SESSION_COOKIE_NAME,
    max_age=settings.SESSION_MAX_AGE,
    same_site="lax",
    https_only=settings.SESSION_HTTPS_ONLY,
)
# The browser client runs on another origin and sends the cookie along.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(LedgerError, ledger_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

app.include_router(api_auth.router)
app.include_router(api_hardware.router)
app.include_router(api_projects.router)

instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, include_in_schema=False)


@app.get("/health")
@app.get("/api/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


@app.on_event("startup")
async def _init_database() -> None:
    init_db(engine, settings.HARDWARE_SEED if settings.SEED_ON_STARTUP else None)
    logger.info("portal.started", extra={"extra_data": {"db": engine.url.render_as_string(hide_password=True)}})


__all__ = ["app"]
