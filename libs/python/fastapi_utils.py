"""FastAPI utilities shared by the hello-kubernetes services.

- ``add_health_check``: the ``/health`` endpoint used by the Kubernetes probes
- ``add_request_logging``: per-request log context and a completion log line
- ``configure_cors``: opt-in CORS for a frontend served from another origin
"""

import os
import time
import uuid
from typing import Iterable, List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from libs.python.logging import get_logger, request_context

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class HealthStatus(BaseModel):
    """Health check response body."""

    status: str = "healthy"
    service: str


def add_health_check(app: FastAPI, service_name: str, path: str = "/health") -> None:
    """Register a liveness/readiness endpoint on the app.

    Args:
        app: FastAPI application instance
        service_name: Name reported in the response body
        path: Route path (default: /health)
    """

    @app.get(path, response_model=HealthStatus, tags=["health"])
    def health_check() -> HealthStatus:
        """Health check endpoint for container orchestration."""
        return HealthStatus(service=str(service_name))


def add_request_logging(app: FastAPI) -> None:
    """Scope a request log context around every request.

    The request id is taken from the ``X-Request-ID`` header when the ingress
    controller supplies one, otherwise generated, and echoed on the response.
    """

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        client_ip = request.client.host if request.client else None

        with request_context(
            request_id=request_id,
            http_method=request.method,
            http_path=request.url.path,
            client_ip=client_ip,
        ) as ctx:
            started = time.perf_counter()
            response = await call_next(request)
            ctx.http_status_code = response.status_code
            logger.info(
                "%s %s %s",
                request.method,
                request.url.path,
                response.status_code,
                extra={"duration_ms": round((time.perf_counter() - started) * 1000, 2)},
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def cors_origins_from_env(var: str = "CORS_ALLOW_ORIGINS") -> List[str]:
    """Parse a comma-separated origin list from the environment."""
    raw = os.getenv(var, "")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def configure_cors(app: FastAPI, origins: Optional[Iterable[str]] = None) -> bool:
    """Allow cross-origin GETs from the given origins.

    Args:
        app: FastAPI application instance
        origins: Allowed origins (default: CORS_ALLOW_ORIGINS from the environment)

    Returns:
        True if the middleware was added, False when no origins are configured
    """
    allowed = list(origins) if origins is not None else cors_origins_from_env()
    if not allowed:
        return False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    logger.info("CORS enabled", extra={"cors_origins": ",".join(allowed)})
    return True
