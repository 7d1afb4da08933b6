"""OpenTelemetry metrics configuration.

Sets up a MeterProvider with OTLP export so that the FastAPI instrumentation
records request metrics.
"""

import logging
import os
from typing import Optional

from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.metrics import set_meter_provider
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

logger = logging.getLogger(__name__)

_metrics_configured = False


def configure_metrics(
    service_name: Optional[str] = None,
    deployment_environment: Optional[str] = None,
    otlp_endpoint: Optional[str] = None,
    export_interval_millis: int = 60000,
    force_reconfigure: bool = False,
) -> bool:
    """Configure OpenTelemetry metrics with OTLP export.

    Args:
        service_name: Service name (auto-detected from APP_NAME if not provided)
        deployment_environment: Environment (auto-detected from APP_ENV if not provided)
        otlp_endpoint: OTLP collector endpoint (defaults to env or http://localhost:4317)
        export_interval_millis: Metrics export interval in milliseconds
        force_reconfigure: Force reconfiguration even if already configured

    Returns:
        True if metrics were configured, False if already configured
    """
    global _metrics_configured

    if _metrics_configured and not force_reconfigure:
        logger.debug("Metrics already configured, skipping")
        return False

    service_name = service_name or os.getenv("APP_NAME", "unknown-service")
    deployment_environment = (
        deployment_environment
        or os.getenv("APP_ENV")
        or os.getenv("ENVIRONMENT", "development")
    )

    resource_attrs = {
        "service.name": service_name,
        "service.version": os.getenv("APP_VERSION", "unknown"),
        "deployment.environment": deployment_environment,
    }
    if pod_name := os.getenv("POD_NAME"):
        resource_attrs["k8s.pod.name"] = pod_name
    if namespace := os.getenv("NAMESPACE"):
        resource_attrs["k8s.namespace.name"] = namespace

    endpoint = (
        otlp_endpoint
        or os.getenv("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT")
        or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
        or "http://localhost:4317"
    )

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=endpoint, insecure=True),
        export_interval_millis=export_interval_millis,
    )
    set_meter_provider(
        MeterProvider(resource=Resource.create(resource_attrs), metric_readers=[metric_reader])
    )

    _metrics_configured = True

    logger.info(
        f"Metrics configured for {service_name}",
        extra={"otlp_endpoint": endpoint, "export_interval_ms": export_interval_millis},
    )

    return True
