"""
FastAPI Application Factory
===========================

Runs AuthSnap as a standalone login service configured from environment
variables (see ``authsnap.config.Settings``).

Routes:
    - {base_path}/*  : OAuth login, callback, logout and error routes
    - /health        : Health check endpoint

Environment Variables:
    - AUTHSNAP_SESSION_SECRET: Secret for signing session tokens (required)
    - AUTHSNAP_PROVIDERS: JSON object of provider configurations
    - AUTHSNAP_BASE_PATH / AUTHSNAP_BASE_URL / AUTHSNAP_ALLOWED_REDIRECTS
    - AUTHSNAP_RATE_LIMIT_ENABLED / _WINDOW_MS / _MAX
    - AUTHSNAP_LOG_LEVEL: Logging level (default: INFO)
    - AUTHSNAP_FORWARDED_ALLOW_IPS: Proxies trusted for X-Forwarded-For (default: 127.0.0.1)

Running the Service:
    Development:
        uvicorn authsnap.main:create_app --factory --reload --port 8080

    Direct:
        python -m authsnap.main
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import Settings, get_settings, validate_configuration
from .core import AuthSnap
from .errors import AuthSnapError
from .middleware.rate_limit import PRUNE_INTERVAL_SECONDS

logger = logging.getLogger("authsnap.main")


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured JSON-line logging on stdout.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)],
    )


async def _prune_rate_limiter(auth: AuthSnap, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        removed = auth.rate_limiter.prune()
        if removed:
            logger.debug("Pruned rate limiter", extra={"keys_removed": removed})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup: start the periodic rate-limiter sweep (when rate limiting is on).
    Shutdown: cancel the sweep.
    """
    auth: AuthSnap = app.state.auth
    prune_task: Optional[asyncio.Task] = None

    if auth.rate_limiter is not None:
        prune_task = asyncio.create_task(_prune_rate_limiter(auth, PRUNE_INTERVAL_SECONDS))

    logger.info(
        "AuthSnap service started",
        extra={"providers": sorted(auth.providers), "base_path": auth.config.base_path},
    )

    yield

    if prune_task is not None:
        prune_task.cancel()
        try:
            await prune_task
        except asyncio.CancelledError:
            pass

    logger.info("AuthSnap service shutdown complete")


def create_app(auth: Optional[AuthSnap] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory function.

    Args:
        auth: Preconfigured AuthSnap instance. Built from ``settings`` when
            omitted.
        settings: Deployment settings; loaded from the environment when
            omitted.

    Returns:
        FastAPI: Configured application instance
    """
    if auth is None:
        settings = settings or get_settings()
        setup_logging(settings.LOG_LEVEL)

        report = validate_configuration(settings)
        for warning in report["warnings"]:
            logger.warning(f"Configuration warning: {warning}")

        auth = AuthSnap(settings.to_config())

    app = FastAPI(
        title="AuthSnap",
        description="OAuth2 / OIDC login and session service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.auth = auth
    auth.mount(app)

    @app.get("/health", tags=["System"])
    async def health_check() -> Dict[str, object]:
        return {
            "status": "ok",
            "service": "authsnap",
            "providers": sorted(auth.providers),
        }

    @app.exception_handler(AuthSnapError)
    async def authsnap_error_handler(request: Request, exc: AuthSnapError) -> JSONResponse:
        logger.warning(
            f"{exc.code}: {exc.message}",
            extra={"path": request.url.path, "method": request.method},
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "code": exc.code})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log unhandled errors and return a generic 500 response."""
        logger.error(
            f"Unhandled exception: {exc}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__,
            },
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "internal_server_error", "message": "An unexpected error occurred"},
        )

    return app


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "authsnap.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        proxy_headers=True,
        forwarded_allow_ips=settings.FORWARDED_ALLOW_IPS,
    )
