"""Reusable typer parameter types for service CLIs."""

from typing import Annotated, Optional

import typer

# ==============================================================================
# Logging parameters
# ==============================================================================

LogLevel = Annotated[
    str,
    typer.Option("--log-level", envvar="LOG_LEVEL", help="DEBUG, INFO, WARNING, ERROR or CRITICAL"),
]
EnableOTLP = Annotated[
    bool, typer.Option("--log-otlp", envvar="LOG_OTLP", help="Enable OTLP log and metric export")
]
EnableJSONLogs = Annotated[
    bool, typer.Option("--log-json", envvar="LOG_JSON_FORMAT", help="Write JSON log lines to stdout")
]

# ==============================================================================
# Service parameters
# ==============================================================================

# Application environment (dev, staging, prod, etc.)
AppEnv = Annotated[Optional[str], typer.Option("--app-env", envvar="APP_ENV")]

Host = Annotated[str, typer.Option("--host", envvar="APP_HOST", help="Address to bind to")]
Port = Annotated[int, typer.Option("--port", envvar="APP_PORT", help="Port to bind to")]
Workers = Annotated[
    int, typer.Option("--workers", envvar="APP_WORKERS", help="Number of Gunicorn worker processes")
]
DevMode = Annotated[
    bool, typer.Option("--dev", help="Run a single uvicorn process instead of gunicorn")
]
