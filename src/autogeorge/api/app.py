"""FastAPI application: cron endpoints, admin endpoints and error mapping."""

import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from autogeorge.__version__ import __version__
from autogeorge.api.routes import admin, cron, debug
from autogeorge.core.config import Config
from autogeorge.database.connection import DatabaseConnection
from autogeorge.integrations.provider_factory import ProviderFactory
from autogeorge.integrations.wordpress_client import WordPressClient
from autogeorge.pipeline.images.search import ImageSearchService
from autogeorge.pipeline.orchestrator import StageRunner
from autogeorge.pipeline.publisher import WordPressClientFactory
from autogeorge.utils.exceptions import (
    AutoGeorgeError,
    StageLockedError,
    ValidationError,
    WordPressError,
)
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

RunnerFactory = Callable[[Config, DatabaseConnection], StageRunner]
SearchServiceFactory = Callable[[Config, DatabaseConnection], ImageSearchService]


def error_response(status_code: int, error: str, details: Any = None) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def default_search_service(config: Config, db: DatabaseConnection) -> ImageSearchService:
    """Search service with clients built from the configuration."""
    factory = ProviderFactory(config, db)
    search_client = factory.get_search_client() if config.perplexity_api_key else None
    return ImageSearchService(config, search_client, factory.get_image_client())


def _add_cors(app: FastAPI) -> None:
    """Allow dashboards on other origins to call the API."""
    allow_all = os.getenv("CORS_ALLOW_ALL", "true").lower() == "true"
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "")
    origins = [o.strip() for o in origins_env.split(",") if o.strip()]
    allow_credentials = os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"
    if allow_all or not origins:
        origins = ["*"]
    if origins == ["*"] and allow_credentials:
        # Starlette rejects wildcard origins together with credentials
        allow_credentials = False
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return error_response(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", exc.errors())

    @app.exception_handler(StageLockedError)
    async def stage_locked(request: Request, exc: StageLockedError) -> JSONResponse:
        logger.warning("stage_locked", stage=exc.stage, holder=exc.holder)
        return error_response(
            status.HTTP_409_CONFLICT,
            "stage already running",
            {"stage": exc.stage, "holder": exc.holder},
        )

    @app.exception_handler(WordPressError)
    async def wordpress_error(request: Request, exc: WordPressError) -> JSONResponse:
        code = exc.status_code if exc.status_code and exc.status_code >= 400 else 502
        return error_response(code, "WordPress request failed", str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(AutoGeorgeError)
    async def application_error(request: Request, exc: AutoGeorgeError) -> JSONResponse:
        logger.error("request_failed", path=request.url.path, error=str(exc))
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", str(exc)
        )

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("request_crashed", path=request.url.path, error=str(exc))
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", str(exc)
        )


def create_app(
    config: Optional[Config] = None,
    runner_factory: Optional[RunnerFactory] = None,
    db: Optional[DatabaseConnection] = None,
    wordpress_client_factory: Optional[WordPressClientFactory] = None,
    search_service_factory: Optional[SearchServiceFactory] = None,
) -> FastAPI:
    """Build the API application.

    Args:
        config: Application configuration; read from the environment when omitted.
        runner_factory: Builds the StageRunner for a cron request.
        db: Database connection; opened from config.db_path when omitted.
        wordpress_client_factory: Builds WordPress clients for the admin proxy.
        search_service_factory: Builds the image search service.

    Returns:
        Configured FastAPI application.
    """
    config = config or Config()
    db = db or DatabaseConnection(config.db_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("api_starting", environment=config.environment)
        yield
        db.close()
        logger.info("api_stopped")

    app = FastAPI(title="AutoGeorge", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.db = db
    app.state.runner_factory = runner_factory or (lambda cfg, conn: StageRunner(cfg, conn))
    app.state.wordpress_client_factory = wordpress_client_factory or (
        lambda site: WordPressClient(site, timeout=config.wordpress_timeout_sec)
    )
    app.state.search_service_factory = search_service_factory or default_search_service

    _add_cors(app)
    _register_exception_handlers(app)

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok", "version": __version__}

    app.include_router(cron.router)
    app.include_router(admin.router)
    app.include_router(debug.router)
    return app
