"""FastAPI application factory and entry point."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .errors import AuthenticationRequired, PriceUnavailableError, ValidationError
from .ledger import Ledger, SQLiteLedgerStore, create_admin_router, create_ledger_router
from .logging_utils import setup_logging
from .market import PriceBroadcaster, PriceSource, create_price_source, create_stream_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    price_source: PriceSource | None = None,
) -> FastAPI:
    """Wire the price engine and the ledger into a FastAPI app.

    The broadcaster is created here but only polls while the app's lifespan
    is active; ``price_source`` overrides the one selected by settings.
    """
    settings = settings or Settings.from_env()
    source = price_source or create_price_source(settings)
    broadcaster = PriceBroadcaster(source, poll_interval=settings.poll_interval)

    store = SQLiteLedgerStore(settings.db_path)
    store.initialize()
    ledger = Ledger(store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await broadcaster.start()
        try:
            yield
        finally:
            await broadcaster.stop()
            source.close()

    app = FastAPI(title="Goldfolio", lifespan=lifespan)
    app.state.settings = settings
    app.state.broadcaster = broadcaster
    app.state.ledger = ledger

    app.include_router(
        create_stream_router(
            broadcaster,
            keepalive_interval=settings.keepalive_interval,
            replay_latest=settings.stream_replay_latest,
        )
    )
    app.include_router(
        create_ledger_router(ledger, broadcaster, price_source=settings.ledger_price_source)
    )
    if settings.admin_enabled:
        logger.warning("Admin routes enabled; do not expose this instance publicly")
        app.include_router(create_admin_router(ledger))

    _register_error_handlers(app)
    return app


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def handle_validation(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error(400, "Request body must be a JSON object")

    @app.exception_handler(AuthenticationRequired)
    async def handle_auth(request: Request, exc: AuthenticationRequired) -> JSONResponse:
        return _error(401, str(exc))

    @app.exception_handler(PriceUnavailableError)
    async def handle_no_price(request: Request, exc: PriceUnavailableError) -> JSONResponse:
        return _error(503, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal Server Error")


def run() -> None:
    """Console entry point: ``goldfolio``."""
    import uvicorn

    load_dotenv()
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
