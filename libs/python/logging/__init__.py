"""Structured logging with pod and request context.

Every record carries the service metadata (app name, environment, pod name and
address) plus, inside a request, the request id and HTTP fields.

Example:
    ```python
    from libs.python.logging import configure_logging, get_logger

    # Configure once at process startup
    configure_logging(service_name="hello-kubernetes-api")

    logger = get_logger(__name__)
    logger.info("Serving message", extra={"pod_ip": "10.1.0.58"})
    ```
"""

from libs.python.logging.config import configure_logging, is_configured
from libs.python.logging.factory import get_logger
from libs.python.logging.metrics import configure_metrics
from libs.python.logging.context import (
    LogContext,
    set_context,
    get_context,
    clear_context,
    update_context,
    request_context,
)

__all__ = [
    "configure_logging",
    "is_configured",
    "configure_metrics",
    "get_logger",
    "LogContext",
    "set_context",
    "get_context",
    "clear_context",
    "update_context",
    "request_context",
]
