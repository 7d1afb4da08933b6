"""Hello Kubernetes API - greets the caller from the pod that served the request."""

import os
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from demo.hello_kubernetes.api.address import discover_pod_address
from demo.hello_kubernetes.api.models import Message, Pong
from demo.hello_kubernetes.constants import ServiceName
from libs.python.fastapi_utils import add_health_check, add_request_logging, configure_cors
from libs.python.logging import configure_metrics, get_logger, update_context

logger = get_logger(__name__)

DEFAULT_TITLE = "Hello from Go!"

router = APIRouter()


def build_message(pod_address: str, title: str = DEFAULT_TITLE) -> Message:
    return Message(title=title, body=f"Welcome to Kubernetes pod@'{pod_address}'.")


@router.get("/message", response_model=Message)
def get_message(request: Request) -> Message:
    """Returns the greeting with the serving pod's address."""
    return build_message(request.app.state.pod_address, request.app.state.title)


@router.get("/ping", response_model=Pong)
def ping() -> Pong:
    return Pong()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Raises AddressDiscoveryError, which aborts startup
    app.state.pod_address = discover_pod_address()
    update_context(pod_ip=app.state.pod_address)
    logger.info("Serving from pod address %s", app.state.pod_address)
    yield


def create_app() -> FastAPI:
    """Factory function to create the API FastAPI application."""
    app = FastAPI(
        title="Hello Kubernetes API",
        description="Returns a greeting naming the pod that served the request",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.title = os.getenv("MESSAGE_TITLE") or DEFAULT_TITLE

    app.include_router(router)
    add_health_check(app, ServiceName.API)
    add_request_logging(app)
    configure_cors(app)

    if os.getenv("LOG_OTLP", "").lower() in ("true", "1", "yes"):
        configure_metrics(service_name=ServiceName.API)

    FastAPIInstrumentor.instrument_app(app)

    return app
