# backend/rentline/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .domain.errors import (
    Conflict,
    EntityNotFound,
    InvalidRole,
    InvalidTransition,
    MissingRequiredNote,
    PermissionDenied,
    RentlineError,
    StoreUnavailable,
)
from .logging_config import configure_logging
from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware
from .routers.applications import router as applications_router
from .routers.dashboard import router as dashboard_router
from .routers.health import router as health_router
from .routers.leases import router as leases_router
from .routers.listings import router as listings_router
from .routers.maintenance import router as maintenance_router
from .routers.me import router as me_router
from .routers.messages import router as messages_router
from .routers.payments import router as payments_router
from .routers.properties import router as properties_router
from .routers.store import router as store_router
from .routers.users import router as users_router
from .store.base import EntityStore
from .store.factory import make_store

API_PREFIX = "/api"

log = logging.getLogger("rentline.app")

# most specific first; the first isinstance match wins
ERROR_STATUS: tuple[tuple[type[RentlineError], int], ...] = (
    (InvalidRole, 403),
    (PermissionDenied, 403),
    (EntityNotFound, 404),
    (InvalidTransition, 409),
    (Conflict, 409),
    (MissingRequiredNote, 422),
    (StoreUnavailable, 503),
)


def _cors_origins() -> list[str]:
    val = settings.cors_allow_origins
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


async def rentline_error_handler(request: Request, exc: RentlineError) -> JSONResponse:
    status = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 400)
    body = exc.as_dict()
    if isinstance(exc, StoreUnavailable):
        # views degrade to an empty list, never a partial one
        body["data"] = []
        log.warning("store unavailable: %s", exc.message)
    return JSONResponse(body, status_code=status)


def create_app(store: Optional[EntityStore] = None) -> FastAPI:
    """
    Build the API. Pass a store to run against a prepared backend (tests);
    otherwise one is made from settings on startup and closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, "store", None) is None
        if owned:
            app.state.store = make_store()
        try:
            yield
        finally:
            if owned:
                await app.state.store.aclose()
                app.state.store = None

    app = FastAPI(title="Rentline Portal", version=settings.app_version, lifespan=lifespan)
    app.state.store = store

    app.add_middleware(StructuredLoggingMiddleware)
    # added last so it runs first and the request log line carries the id
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RentlineError, rentline_error_handler)

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(dashboard_router, prefix=API_PREFIX)
    app.include_router(properties_router, prefix=API_PREFIX)
    app.include_router(leases_router, prefix=API_PREFIX)
    app.include_router(payments_router, prefix=API_PREFIX)
    app.include_router(maintenance_router, prefix=API_PREFIX)
    app.include_router(applications_router, prefix=API_PREFIX)
    app.include_router(messages_router, prefix=API_PREFIX)
    app.include_router(listings_router, prefix=API_PREFIX)
    app.include_router(me_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(store_router, prefix=API_PREFIX)

    return app


configure_logging()
app = create_app()
