"""Hello Kubernetes frontend - serves the static page that calls the API."""

from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from demo.hello_kubernetes.constants import ServiceName
from libs.python.fastapi_utils import add_health_check, add_request_logging

STATIC_DIR = Path(__file__).parent / "static"


def create_app() -> FastAPI:
    """Factory function to create the frontend FastAPI application."""
    app = FastAPI(
        title="Hello Kubernetes Frontend",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # Routes must be registered before the catch-all static mount
    add_health_check(app, ServiceName.FRONTEND)
    add_request_logging(app)
    app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="static")

    return app
