"""
Gunicorn configuration for FastAPI applications.

Provides production-ready Gunicorn settings with proper logging,
worker management, and graceful shutdown.
"""

import logging
import os
from typing import Any, Callable, Dict, Optional

from gunicorn.app.base import BaseApplication

from libs.python.logging import configure_logging, is_configured


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("true", "1", "yes")


def _configure_worker_logging(server, worker):
    """
    Configure logging in each worker process.

    Called by gunicorn after each worker is forked, so every worker exports
    through the same pipeline as the arbiter.
    """
    if not is_configured():
        # APP_NAME, APP_ENV, POD_* are picked up from the environment
        configure_logging(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            enable_otlp=_env_flag("LOG_OTLP"),
            json_format=_env_flag("LOG_JSON_FORMAT"),
            force_reconfigure=False,
        )
        logging.debug(f"Configured logging in worker {worker.pid}")


def get_gunicorn_config(
    microservice_name: str,
    port: int = 80,
    host: str = "0.0.0.0",
    workers: int = 1,
    worker_class: str = "libs.python.gunicorn.uvicorn_worker.UvicornWorker",
    preload_app: bool = False,
    timeout: int = 30,
    log_level: str = "info",
) -> dict:
    """
    Get Gunicorn configuration for a FastAPI service.

    Args:
        microservice_name: Service name, used to tag access log lines
        port: Port to bind to (default: 80)
        host: Host to bind to (default: 0.0.0.0)
        workers: Number of worker processes (default: 1)
        worker_class: Gunicorn worker class to use
        preload_app: Whether to load the application before forking workers
        timeout: Worker timeout in seconds
        log_level: Gunicorn log level

    Returns:
        Configuration dict for Gunicorn

    Example:
        >>> options = get_gunicorn_config(microservice_name="hello-kubernetes-api")
        >>> GunicornApplication(create_app, options).run()
    """
    return {
        "bind": f"{host}:{port}",
        "workers": workers,
        "worker_class": worker_class,
        "worker_connections": 1000,
        "max_requests": 1000,
        "max_requests_jitter": 100,
        "preload_app": preload_app,
        "keepalive": 5,
        "timeout": timeout,
        "graceful_timeout": 30,
        "access_log_format": f'[{microservice_name}] %(h)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s',
        "accesslog": "-",
        "errorlog": "-",
        "loglevel": log_level,
        "capture_output": True,
        "enable_stdio_inheritance": True,
        "post_fork": _configure_worker_logging,
    }


class GunicornApplication(BaseApplication):
    """Gunicorn application that serves an app factory with programmatic options."""

    def __init__(self, app_factory: Callable[[], Any], options: Optional[Dict[str, Any]] = None):
        self.options = options or {}
        self.app_factory = app_factory
        super().__init__()

    def load_config(self):
        config = {
            key: value
            for key, value in self.options.items()
            if key in self.cfg.settings and value is not None
        }
        for key, value in config.items():
            self.cfg.set(key.lower(), value)

    def load(self):
        return self.app_factory()
