"""Reusable CLI building blocks for typer applications.

Parameter types are ``Annotated`` aliases so that every service exposes the
same flags and environment variables:

    ```python
    import typer
    from libs.python.cli.types import LogLevel, Port

    app = typer.Typer()

    @app.command()
    def start(port: Port = 80, log_level: LogLevel = "INFO"):
        ...
    ```
"""

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

__all__ = [
    "AppEnv",
    "DevMode",
    "EnableJSONLogs",
    "EnableOTLP",
    "Host",
    "LogLevel",
    "Port",
    "Workers",
]
