"""Tests for the structured logging library."""

import json
import logging

import pytest

from libs.python.logging import (
    LogContext,
    clear_context,
    configure_logging,
    get_context,
    get_logger,
    request_context,
    set_context,
    update_context,
)
from libs.python.logging.formatters import StructuredFormatter
from libs.python.logging.otel_handler import context_attributes


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture(autouse=True)
def _reset_context():
    clear_context()
    yield
    clear_context()


def test_configure_logging_with_overrides(monkeypatch):
    """Explicit parameters win over environment detection."""
    monkeypatch.setenv("APP_NAME", "from-env")
    monkeypatch.setenv("POD_IP", "10.1.0.58")

    context = configure_logging(
        service_name="hello-kubernetes-api",
        deployment_environment="test",
        app_type="external-api",
        enable_otlp=False,
        force_reconfigure=True,
    )

    assert context.app_name == "hello-kubernetes-api"
    assert context.environment == "test"
    assert context.app_type == "external-api"
    assert context.pod_ip == "10.1.0.58"
    assert get_context() is context


def test_configure_logging_defaults(monkeypatch):
    """Missing metadata falls back to defaults."""
    for var in ("APP_NAME", "APP_ENV", "ENVIRONMENT", "APP_VERSION"):
        monkeypatch.delenv(var, raising=False)

    context = configure_logging(enable_otlp=False, force_reconfigure=True)

    assert context.app_name == "unknown-app"
    assert context.environment == "development"
    assert context.version == "latest"


def test_configure_logging_unknown_kwargs_go_to_custom():
    context = configure_logging(
        service_name="svc", enable_otlp=False, force_reconfigure=True, team="platform"
    )
    assert context.custom == {"team": "platform"}


def test_from_environment_reads_downward_api(monkeypatch):
    monkeypatch.setenv("POD_NAME", "api-7d9f")
    monkeypatch.setenv("POD_NAMESPACE", "demo")
    monkeypatch.setenv("NODE_NAME", "node-1")
    monkeypatch.delenv("NAMESPACE", raising=False)

    context = LogContext.from_environment()

    assert context.pod_name == "api-7d9f"
    assert context.namespace == "demo"
    assert context.node_name == "node-1"


def test_update_context_creates_and_merges():
    update_context(request_id="req-1", batch=3)
    update_context(custom={"extra": True})

    context = get_context()
    assert context.request_id == "req-1"
    assert context.custom == {"batch": 3, "extra": True}


def test_request_context_is_scoped():
    """request_context derives a copy and restores the previous context."""
    base = LogContext(app_name="svc")
    set_context(base)

    with request_context(request_id="abc", http_path="/message", route="message") as ctx:
        assert get_context() is ctx
        assert ctx.app_name == "svc"
        assert ctx.request_id == "abc"
        assert ctx.custom == {"route": "message"}

    assert get_context() is base
    assert base.request_id is None
    assert base.custom == {}


def test_context_to_dict_skips_none():
    context = LogContext(app_name="svc", custom={"k": "v"})
    assert context.to_dict() == {"app_name": "svc", "k": "v"}


def test_context_logger_injects_context():
    set_context(LogContext(app_name="svc", pod_ip="10.0.0.5"))
    handler = _ListHandler()
    base = logging.getLogger("test.context_logger")
    base.addHandler(handler)
    base.setLevel(logging.INFO)
    try:
        get_logger("test.context_logger").info("hello", extra={"pod_ip": "override"})
    finally:
        base.removeHandler(handler)

    record = handler.records[0]
    assert record.app_name == "svc"
    # Explicit extra values are not overwritten
    assert record.pod_ip == "override"


def test_structured_formatter_outputs_json():
    global_context = LogContext(app_name="svc", environment="test")
    set_context(global_context)
    formatter = StructuredFormatter(global_context, include_trace=False)

    record = logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname="test.py",
        lineno=7,
        msg="served %s",
        args=("message",),
        exc_info=None,
    )
    record.pod_ip = "10.0.0.5"

    with request_context(request_id="req-9"):
        data = json.loads(formatter.format(record))

    assert data["message"] == "served message"
    assert data["severity"] == "INFO"
    assert data["app_name"] == "svc"
    assert data["request_id"] == "req-9"
    assert data["pod_ip"] == "10.0.0.5"
    assert data["source"]["line"] == 7


def test_context_attributes_follow_semantic_conventions():
    context = LogContext(
        request_id="r1",
        http_method="GET",
        http_path="/message",
        http_status_code=200,
        client_ip="10.0.0.1",
        custom={"route": "message"},
    )

    assert context_attributes(context) == {
        "request.id": "r1",
        "http.request.method": "GET",
        "url.path": "/message",
        "http.response.status_code": 200,
        "client.address": "10.0.0.1",
        "app.route": "message",
    }


def test_public_api():
    import libs.python.logging as logging_lib

    assert sorted(logging_lib.__all__) == [
        "LogContext",
        "clear_context",
        "configure_logging",
        "configure_metrics",
        "get_context",
        "get_logger",
        "is_configured",
        "request_context",
        "set_context",
        "update_context",
    ]
    for name in logging_lib.__all__:
        assert hasattr(logging_lib, name)
