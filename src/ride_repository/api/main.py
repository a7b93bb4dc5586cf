"""
Ride Repository API -- FastAPI application.

Exposes the rides search/write endpoints and the price list behind the
authentication gate. Store failures are mapped to structured JSON errors; no
driver text or stack trace reaches the client.
"""

import logging
import logging.config
import time
from contextlib import asynccontextmanager
from logging import LoggerAdapter
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ride_repository.api import health, routes_prices, routes_rides
from ride_repository.api.auth import static_token_verifier
from ride_repository.api.dependencies import RepositoryProvider
from ride_repository.base.backend import SqlBackend
from ride_repository.base.exceptions import (
    MissingFieldsException,
    ObjectNotFoundException,
    StoreUnavailableException,
    ValidationException,
)
from ride_repository.config import Settings, get_settings
from ride_repository.db_implementations.mysql_backend import MySQLBackend, create_pool
from ride_repository.db_implementations.sqlite_backend import SqliteBackend

logger = logging.getLogger("ride_repository.api")


def configure_logging(settings: Settings) -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                },
            },
            "handlers": {
                "default": {
                    "formatter": "default",
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {
                "ride_repository": {
                    "handlers": ["default"],
                    "level": settings.log_level,
                    "propagate": False,
                },
                "uvicorn": {"handlers": ["default"], "level": "INFO"},
                "aiomysql": {"handlers": ["default"], "level": "WARNING"},
            },
        }
    )


async def open_backend(settings: Settings) -> SqlBackend:
    """Connect the backend selected by ``settings.db_backend``."""
    if settings.db_backend == "sqlite":
        return await SqliteBackend.connect(settings.sqlite_path)
    if settings.db_backend == "mysql":
        pool = await create_pool(
            host=settings.mysql_host,
            port=settings.mysql_port,
            user=settings.mysql_user,
            password=settings.mysql_password,
            db=settings.db_name,
            minsize=settings.mysql_pool_minsize,
            maxsize=settings.mysql_pool_maxsize,
        )
        return MySQLBackend(pool, db_name=settings.db_name)
    raise ValueError(f"Unknown db_backend '{settings.db_backend}'")


def create_app(
    settings: Optional[Settings] = None, backend: Optional[SqlBackend] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use; defaults to the environment.
        backend: An already connected backend. When given, the application
            uses it as is and does not close it on shutdown.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        startup_log = LoggerAdapter(logger, {"request_id": "startup"})
        logger.info(f"Starting {settings.app_name} v{settings.app_version}")

        owned = backend is None
        active_backend = backend
        if active_backend is None:
            active_backend = await open_backend(settings)

        provider = RepositoryProvider(active_backend, settings)
        try:
            await provider.warm(startup_log)
        except StoreUnavailableException:
            logger.warning(
                "Database unavailable at startup; schema profiles will be "
                "resolved on first request."
            )
        app.state.repositories = provider
        logger.info("Application startup complete")

        yield

        if owned:
            await active_backend.close()
        logger.info("Application shutting down")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.token_verifier = static_token_verifier(settings.api_token)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {elapsed:.3f}s"
        )
        return response

    @app.exception_handler(MissingFieldsException)
    async def missing_fields_handler(request: Request, exc: MissingFieldsException):
        return JSONResponse(
            status_code=400, content={"error": exc.message, "missing": exc.missing}
        )

    @app.exception_handler(ValidationException)
    async def validation_handler(request: Request, exc: ValidationException):
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.exception_handler(ObjectNotFoundException)
    async def not_found_handler(request: Request, exc: ObjectNotFoundException):
        return JSONResponse(status_code=404, content={"error": exc.message})

    @app.exception_handler(StoreUnavailableException)
    async def store_unavailable_handler(
        request: Request, exc: StoreUnavailableException
    ):
        logger.error(
            f"Database unavailable on {request.url.path}: {exc.__cause__!r}",
        )
        return JSONResponse(
            status_code=503, content={"error": exc.message, "detail": exc.detail}
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ):
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        detail = "Not found" if exc.status_code == 404 else exc.detail
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(health.router)
    app.include_router(routes_rides.router)
    app.include_router(routes_prices.router)

    return app


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        create_app(_settings),
        host=_settings.api_host,
        port=_settings.api_port,
        log_level=_settings.log_level.lower(),
    )
