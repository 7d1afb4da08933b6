"""OpenTelemetry logging handler with context injection.

Extends the OTEL SDK LoggingHandler so that request and pod context is sent
as log record attributes following OTEL semantic conventions.
"""

import logging
from typing import Dict, Any

from opentelemetry.sdk._logs import LoggingHandler

from libs.python.logging.context import LogContext, get_context


def context_attributes(context: LogContext) -> Dict[str, Any]:
    """Map LogContext request fields to OTEL log attribute names.

    Service and pod fields are not included here; they are exported once as
    resource attributes by ``configure_logging``.
    """
    attributes: Dict[str, Any] = {}

    if context.request_id:
        attributes["request.id"] = context.request_id

    # https://opentelemetry.io/docs/specs/semconv/http/http-spans/
    if context.http_method:
        attributes["http.request.method"] = context.http_method
    if context.http_path:
        attributes["url.path"] = context.http_path
    if context.http_status_code:
        attributes["http.response.status_code"] = context.http_status_code
    if context.client_ip:
        attributes["client.address"] = context.client_ip

    for key, value in context.custom.items():
        attributes[f"app.{key}"] = value

    return attributes


class OTELContextHandler(LoggingHandler):
    """OTEL logging handler that injects the current LogContext.

    The SDK handler exports every non-reserved LogRecord attribute, so the
    context is attached directly to the record before it is translated.
    """

    def emit(self, record: logging.LogRecord) -> None:
        context = get_context()
        if context:
            for key, value in context_attributes(context).items():
                record.__dict__.setdefault(key, value)

        super().emit(record)
