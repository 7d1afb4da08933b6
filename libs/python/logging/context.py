"""Context management for structured logging.

Provides contextvars-based storage for log attributes that should be
automatically included in every log record emitted by a service.
"""

import contextvars
import dataclasses
import os
from contextlib import contextmanager
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterator, Optional

# Per-task context storage (each request task gets its own copy)
_log_context: contextvars.ContextVar[Optional["LogContext"]] = contextvars.ContextVar(
    "log_context", default=None
)


@dataclass
class LogContext:
    """Standard attributes for structured logging.

    Service and pod attributes are set once at startup; HTTP attributes are
    scoped to a single request with ``request_context``.
    """

    # Service metadata (set at startup)
    environment: Optional[str] = None  # dev, staging, prod
    app_name: Optional[str] = None  # hello-kubernetes-api
    app_type: Optional[str] = None  # external-api, internal-api
    version: Optional[str] = None

    # Kubernetes context (downward API)
    pod_name: Optional[str] = None
    pod_ip: Optional[str] = None
    namespace: Optional[str] = None
    node_name: Optional[str] = None

    # HTTP context (set per-request)
    request_id: Optional[str] = None
    http_method: Optional[str] = None
    http_path: Optional[str] = None
    http_status_code: Optional[int] = None
    client_ip: Optional[str] = None

    # Custom attributes
    custom: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values and empty custom dict."""
        result = {}
        data = asdict(self)
        custom = data.pop("custom", {})

        for key, value in data.items():
            if value is not None:
                result[key] = value

        result.update(custom)

        return result

    @classmethod
    def from_environment(cls) -> "LogContext":
        """Create LogContext from environment variables.

        The Kubernetes variables are injected by the Deployments rendered in
        ``tools.kube_helper.composer``.
        """
        return cls(
            environment=os.getenv("APP_ENV") or os.getenv("ENVIRONMENT"),
            app_name=os.getenv("APP_NAME"),
            app_type=os.getenv("APP_TYPE"),
            version=os.getenv("APP_VERSION"),
            pod_name=os.getenv("POD_NAME") or os.getenv("HOSTNAME"),
            pod_ip=os.getenv("POD_IP"),
            namespace=os.getenv("NAMESPACE") or os.getenv("POD_NAMESPACE"),
            node_name=os.getenv("NODE_NAME"),
        )


def set_context(context: LogContext) -> None:
    """Set the current log context."""
    _log_context.set(context)


def get_context() -> Optional[LogContext]:
    """Get the current log context, or None if not set."""
    return _log_context.get()


def clear_context() -> None:
    """Clear the current log context."""
    _log_context.set(None)


def update_context(**kwargs) -> None:
    """Update the current context in place.

    Unknown keys are stored in ``custom``.
    """
    current = get_context()
    if current is None:
        current = LogContext()
        set_context(current)

    for key, value in kwargs.items():
        if key == "custom":
            current.custom.update(value)
        elif hasattr(current, key):
            setattr(current, key, value)
        else:
            current.custom[key] = value


@contextmanager
def request_context(**kwargs) -> Iterator[LogContext]:
    """Scope a derived copy of the current context to a block.

    The global context is left untouched, so concurrent requests never see
    each other's attributes.

    Example:
        >>> with request_context(request_id="abc", http_path="/message") as ctx:
        ...     logger.info("handling")
    """
    base = get_context() or LogContext()
    known = {f.name for f in dataclasses.fields(LogContext)}
    custom = dict(base.custom)
    updates = {}
    for key, value in kwargs.items():
        if key == "custom":
            custom.update(value)
        elif key in known:
            updates[key] = value
        else:
            custom[key] = value

    derived = dataclasses.replace(base, custom=custom, **updates)
    token = _log_context.set(derived)
    try:
        yield derived
    finally:
        _log_context.reset(token)
