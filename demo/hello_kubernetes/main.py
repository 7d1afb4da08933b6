"""Entry point for the hello-kubernetes services.

    hello-kubernetes start-api            # gunicorn on :80
    hello-kubernetes start-frontend --dev --port 8181
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import typer
import uvicorn
from fastapi import FastAPI

from demo.hello_kubernetes.api.address import AddressDiscoveryError, discover_pod_address
from demo.hello_kubernetes.constants import DEFAULT_PORT, ServiceName
from libs.python.cli.types import (
    AppEnv,
    DevMode,
    EnableJSONLogs,
    EnableOTLP,
    Host,
    LogLevel,
    Port,
    Workers,
)
from libs.python.gunicorn import GunicornApplication, get_gunicorn_config
from libs.python.logging import configure_logging

app = typer.Typer(help="Run the hello-kubernetes API and frontend services")
logger = logging.getLogger(__name__)


@dataclass
class LoggingOptions:
    log_level: str
    enable_otlp: bool
    json_format: bool
    app_env: Optional[str]


def create_api_app() -> FastAPI:
    """Factory function to create the API application."""
    from demo.hello_kubernetes.api.main import create_app

    return create_app()


def create_frontend_app() -> FastAPI:
    """Factory function to create the frontend application."""
    from demo.hello_kubernetes.frontend.main import create_app

    return create_app()


@app.callback()
def setup(
    ctx: typer.Context,
    log_level: LogLevel = "INFO",
    log_otlp: EnableOTLP = False,
    log_json: EnableJSONLogs = False,
    app_env: AppEnv = None,
):
    ctx.obj = LoggingOptions(
        log_level=log_level.upper(),
        enable_otlp=log_otlp,
        json_format=log_json,
        app_env=app_env,
    )


def _configure(options: LoggingOptions, service: ServiceName) -> None:
    configure_logging(
        service_name=service,
        deployment_environment=options.app_env,
        log_level=options.log_level,
        enable_otlp=options.enable_otlp,
        json_format=options.json_format,
    )


def serve(
    app_factory: Callable[[], FastAPI],
    service: ServiceName,
    host: str,
    port: int,
    workers: int,
    dev: bool,
    log_level: str,
) -> None:
    """Serve an app factory with uvicorn (dev) or gunicorn."""
    logger.info(
        "Starting %s on %s:%s (%s)", service, host, port, "uvicorn" if dev else f"gunicorn x{workers}"
    )
    if dev:
        uvicorn.run(app_factory(), host=host, port=port, log_config=None)
        return

    options = get_gunicorn_config(
        microservice_name=service,
        host=host,
        port=port,
        workers=workers,
        log_level=log_level.lower(),
    )
    GunicornApplication(app_factory, options).run()


@app.command()
def start_api(
    ctx: typer.Context,
    host: Host = "0.0.0.0",
    port: Port = DEFAULT_PORT,
    workers: Workers = 1,
    dev: DevMode = False,
):
    """Start the API that answers GET /message with the pod address."""
    options: LoggingOptions = ctx.obj
    _configure(options, ServiceName.API)

    # Fail before binding the port if the pod has no usable address
    try:
        address = discover_pod_address()
    except AddressDiscoveryError as e:
        logger.critical("Pod address discovery failed: %s", e)
        raise typer.Exit(code=1)
    logger.info("Pod address is %s", address)

    serve(create_api_app, ServiceName.API, host, port, workers, dev, options.log_level)


@app.command()
def start_frontend(
    ctx: typer.Context,
    host: Host = "0.0.0.0",
    port: Port = DEFAULT_PORT,
    workers: Workers = 1,
    dev: DevMode = False,
):
    """Start the static frontend."""
    options: LoggingOptions = ctx.obj
    _configure(options, ServiceName.FRONTEND)

    serve(create_frontend_app, ServiceName.FRONTEND, host, port, workers, dev, options.log_level)


def main():
    app()


if __name__ == "__main__":
    main()
