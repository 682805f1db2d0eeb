# dyntable/main.py

"""
Main FastAPI application entry point.

This module creates and configures the `FastAPI` app for the dyntable
service. It:

* Opens the datastore(s) on startup and closes them on shutdown, keeping
  them on ``app.state`` for injection into the handlers.
* Sets up CORS (permissive by default) and answers every OPTIONS request
  with an empty 204.
* Renders every error as ``{"error": ...}`` JSON.
* Registers the routers under the `/api` prefix.
* Exposes a `/api/health` route for basic health checking.

Routers included:
    - collection, item (generic tables) and legacy (fixed-schema contacts,
      only when ``LEGACY_DATABASE_DSN`` is set).
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from dyntable.config import Settings, settings as default_settings
from dyntable.cors import preflight_response
from dyntable.db import create_datastore
from dyntable.exceptions import (
    TableAccessError,
    http_exception_handler,
    make_unhandled_exception_handler,
    table_access_exception_handler,
)
from dyntable.routes import collection, item, legacy


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Configuration to use. Defaults to the environment-derived
            module settings.

    Returns:
        FastAPI: The configured application.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the datastores when the app starts and close them when it stops."""
        app.state.datastore = create_datastore(settings.DATABASE_DSN)
        await app.state.datastore.connect()
        if settings.LEGACY_DATABASE_DSN:
            app.state.legacy_datastore = create_datastore(settings.LEGACY_DATABASE_DSN)
            await app.state.legacy_datastore.connect()
        try:
            yield
        finally:
            await app.state.datastore.close()
            app.state.datastore = None
            if getattr(app.state, "legacy_datastore", None) is not None:
                await app.state.legacy_datastore.close()
                app.state.legacy_datastore = None

    app = FastAPI(
        title="dyntable API",
        version="1.0.0",
        description="Generic CRUD over client-named tables with a fixed x_01..x_20 schema",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    allow_origins = settings.PARSED_CORS_ALLOW_ORIGINS

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Table-Name"],
    )

    @app.middleware("http")
    async def answer_options(request: Request, call_next):
        """Answer every OPTIONS request with an empty 204, ahead of CORSMiddleware."""
        if request.method == "OPTIONS":
            return preflight_response(request, allow_origins)
        return await call_next(request)

    app.add_exception_handler(TableAccessError, table_access_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(
        Exception, make_unhandled_exception_handler(settings.EXPOSE_ERROR_TRACE, allow_origins)
    )

    routers = [collection.router, item.router]
    if settings.LEGACY_DATABASE_DSN:
        routers.append(legacy.router)
    for router in routers:
        app.include_router(router, prefix="/api")

    @app.get("/api/health")
    def health():
        """Basic health check endpoint.

        Returns:
            dict: Simple JSON indicating the API is up, e.g. ``{"status": "ok"}``.
        """
        return {"status": "ok"}

    return app


app = create_app()
