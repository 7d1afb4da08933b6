"""Logging configuration and setup.

Centralized configuration for structured logging with OpenTelemetry support.
"""

import logging
import os
import sys
from typing import Optional

from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource

from libs.python.logging.context import LogContext, set_context
from libs.python.logging.formatters import StructuredFormatter
from libs.python.logging.otel_handler import OTELContextHandler


# Global configuration state
_configured = False
_global_context: Optional[LogContext] = None


def configure_logging(
    service_name: Optional[str] = None,
    service_version: Optional[str] = None,
    deployment_environment: Optional[str] = None,
    app_type: Optional[str] = None,
    log_level: str = "INFO",
    enable_otlp: bool = False,
    otlp_endpoint: Optional[str] = None,
    json_format: bool = False,
    force_reconfigure: bool = False,
    **context_kwargs,
) -> LogContext:
    """Configure logging for the process.

    This should be called once at startup. It sets up:
    - Global context auto-detected from environment variables
    - Console output on stdout (plain text or JSON)
    - Optional OTLP export with the context as resource attributes

    Environment variables used (injected by the rendered Deployments):
    - APP_NAME, APP_TYPE, APP_VERSION, APP_ENV / ENVIRONMENT
    - POD_NAME, POD_IP, NAMESPACE, NODE_NAME (downward API)
    - OTEL_EXPORTER_OTLP_LOGS_ENDPOINT / OTEL_EXPORTER_OTLP_ENDPOINT

    Args:
        service_name: Service name (auto-detected from APP_NAME if not provided)
        service_version: Service version (auto-detected from APP_VERSION if not provided)
        deployment_environment: Environment (auto-detected from APP_ENV if not provided)
        app_type: external-api or internal-api (auto-detected from APP_TYPE)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_otlp: Enable OpenTelemetry Protocol (OTLP) export
        otlp_endpoint: OTLP collector endpoint (defaults to env or http://localhost:4317)
        json_format: Use JSON formatting for console output
        force_reconfigure: Force reconfiguration even if already configured
        **context_kwargs: Additional context attributes to override auto-detected values

    Returns:
        LogContext: The configured global log context

    Example:
        >>> configure_logging(service_name="hello-kubernetes-api", json_format=True)
    """
    global _configured, _global_context

    if _configured and not force_reconfigure:
        return _global_context

    root_logger = logging.getLogger()
    if force_reconfigure:
        root_logger.handlers.clear()

    context = LogContext.from_environment()

    if service_name:
        context.app_name = service_name
    if service_version:
        context.version = service_version
    if deployment_environment:
        context.environment = deployment_environment
    if app_type:
        context.app_type = app_type

    for key, value in context_kwargs.items():
        if hasattr(context, key):
            setattr(context, key, value)
        else:
            context.custom[key] = value

    # Defaults for any still-missing values
    if not context.app_name:
        context.app_name = "unknown-app"
    if not context.environment:
        context.environment = "development"
    if not context.version:
        context.version = "latest"

    set_context(context)
    _global_context = context

    root_logger.setLevel(getattr(logging, log_level.upper()))

    if enable_otlp:
        _setup_otlp(context, otlp_endpoint)

    _setup_console(context, json_format)

    # Access logs are written by the request logging middleware instead
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("gunicorn.access").setLevel(logging.WARNING)
    logging.getLogger("gunicorn.error").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True

    logging.info(
        f"Logging configured for {context.app_name}",
        extra={
            "environment": context.environment,
            "app_type": context.app_type,
            "version": context.version,
            "otlp_enabled": enable_otlp,
        },
    )

    return context


def _setup_otlp(context: LogContext, otlp_endpoint: Optional[str]) -> None:
    """Setup OTLP log export with the service and pod context as resource."""
    # https://opentelemetry.io/docs/specs/semconv/
    resource_attrs = {
        "service.name": context.app_name,
        "service.version": context.version or "unknown",
        "deployment.environment": context.environment or "unknown",
    }

    if context.app_type:
        resource_attrs["service.type"] = context.app_type
    if context.pod_name:
        resource_attrs["k8s.pod.name"] = context.pod_name
    if context.pod_ip:
        resource_attrs["k8s.pod.ip"] = context.pod_ip
    if context.namespace:
        resource_attrs["k8s.namespace.name"] = context.namespace
    if context.node_name:
        resource_attrs["k8s.node.name"] = context.node_name

    logger_provider = LoggerProvider(resource=Resource.create(resource_attrs))
    set_logger_provider(logger_provider)

    endpoint = (
        otlp_endpoint
        or os.getenv("OTEL_EXPORTER_OTLP_LOGS_ENDPOINT")
        or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
        or "http://localhost:4317"
    )

    otlp_exporter = OTLPLogExporter(endpoint=endpoint, insecure=True)
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(otlp_exporter))

    handler = OTELContextHandler(level=logging.NOTSET, logger_provider=logger_provider)
    logging.getLogger().addHandler(handler)

    logging.debug(f"OTLP logging enabled: {endpoint}")


def _setup_console(context: LogContext, json_format: bool) -> None:
    """Setup console logging output on stdout."""
    handler = logging.StreamHandler(sys.stdout)

    if json_format:
        formatter = StructuredFormatter(context)
    else:
        formatter = logging.Formatter(
            f"%(asctime)s - [{context.app_name}] %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    logging.getLogger().addHandler(handler)


def is_configured() -> bool:
    """Check if configure_logging has been called."""
    return _configured
