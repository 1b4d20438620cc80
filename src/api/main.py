import logging
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.app_shell.config import Settings, load_settings
from src.app_shell.context import AppContext
from src.app_shell.telemetry import Telemetry, request_id_var
from src.core.ports.email import EmailGatewayPort

REQUEST_ID_HEADER = "X-Request-Id"
NOT_FOUND_MESSAGE = "You've ventured beyond the horizon."


def create_app(
    settings: Settings | None = None,
    email_gateway: EmailGatewayPort | None = None,
    telemetry: Telemetry | None = None,
) -> FastAPI:
    """
    Build the application.

    Resources (connection pool, hashing pool, email gateway) live on an
    AppContext that exists only between lifespan startup and shutdown.
    """
    settings = settings or load_settings()
    telemetry = telemetry or Telemetry(
        level=settings.logging.level, logger_names=("src", settings.logging.name)
    )
    service_logger = logging.getLogger(settings.logging.name)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        telemetry.init()
        db = settings.database
        migrator = SQLiteMigrator(db.path, db.migrations_dir)
        context = AppContext.create(settings, email_gateway=email_gateway)
        try:
            migrator.run_migrations()
            app.state.context = context
            service_logger.info("Postbox listening on %s", settings.application.base_url)
            yield
        finally:
            service_logger.info("Postbox shutting down")
            context.close()
            telemetry.shutdown()

    app = FastAPI(
        title="Postbox",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # --- Routers ---
    from src.api.routes import home, login, newsletters, subscriptions

    app.include_router(home.router, tags=["Home"])
    app.include_router(subscriptions.router, tags=["Subscriptions"])
    app.include_router(newsletters.router, tags=["Newsletters"])
    app.include_router(login.router, tags=["Login"])

    @app.middleware("http")
    async def request_id(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = rid
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> Response:
        if exc.status_code == 404:
            return PlainTextResponse(NOT_FOUND_MESSAGE, status_code=404)
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)

    return app
