"""Request-scoped access to the objects create_app stores on app.state."""

import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from autogeorge.core.config import Config
from autogeorge.database.connection import DatabaseConnection
from autogeorge.pipeline.images.search import ImageSearchService
from autogeorge.pipeline.orchestrator import StageRunner


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_db(request: Request) -> DatabaseConnection:
    return request.app.state.db


def get_runner(request: Request) -> StageRunner:
    state = request.app.state
    return state.runner_factory(state.config, state.db)


def get_search_service(request: Request) -> ImageSearchService:
    state = request.app.state
    return state.search_service_factory(state.config, state.db)


def verify_cron_secret(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    x_cron_secret: Optional[str] = Header(default=None),
) -> None:
    """Reject cron calls without the shared secret.

    Open when no CRON_SECRET is configured, so local cron simulators work.
    """
    secret = request.app.state.config.cron_secret
    if not secret:
        return

    candidates = [x_cron_secret]
    if authorization and authorization.startswith("Bearer "):
        candidates.append(authorization[len("Bearer "):])
    if not any(c and hmac.compare_digest(c, secret) for c in candidates):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
