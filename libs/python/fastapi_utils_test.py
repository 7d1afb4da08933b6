"""Tests for FastAPI utilities."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from libs.python.fastapi_utils import (
    REQUEST_ID_HEADER,
    add_health_check,
    add_request_logging,
    configure_cors,
    cors_origins_from_env,
)
from libs.python.logging import get_context


def _app_with_route():
    app = FastAPI()

    @app.get("/context")
    async def read_context():
        context = get_context()
        return {"request_id": context.request_id, "http_path": context.http_path}

    return app


def test_health_check_reports_service():
    app = FastAPI()
    add_health_check(app, "hello-kubernetes-api")

    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "hello-kubernetes-api"}


def test_request_logging_generates_request_id():
    app = _app_with_route()
    add_request_logging(app)

    response = TestClient(app).get("/context")

    assert response.status_code == 200
    request_id = response.headers[REQUEST_ID_HEADER]
    assert request_id
    assert response.json() == {"request_id": request_id, "http_path": "/context"}


def test_request_logging_propagates_incoming_request_id():
    app = _app_with_route()
    add_request_logging(app)

    response = TestClient(app).get("/context", headers={REQUEST_ID_HEADER: "from-ingress"})

    assert response.headers[REQUEST_ID_HEADER] == "from-ingress"
    assert response.json()["request_id"] == "from-ingress"


def test_request_logging_on_not_found():
    app = FastAPI()
    add_request_logging(app)

    response = TestClient(app).get("/missing")

    assert response.status_code == 404
    assert REQUEST_ID_HEADER in response.headers


def test_cors_origins_from_env(monkeypatch):
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "http://127.0.0.1:8181, http://localhost ,")
    assert cors_origins_from_env() == ["http://127.0.0.1:8181", "http://localhost"]


def test_configure_cors_disabled_without_origins(monkeypatch):
    monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
    assert configure_cors(FastAPI()) is False


def test_configure_cors_allows_listed_origin():
    app = _app_with_route()
    assert configure_cors(app, ["http://127.0.0.1:8181"]) is True

    client = TestClient(app)
    allowed = client.get("/context", headers={"Origin": "http://127.0.0.1:8181"})
    denied = client.get("/context", headers={"Origin": "http://evil.example"})

    assert allowed.headers["access-control-allow-origin"] == "http://127.0.0.1:8181"
    assert "access-control-allow-origin" not in denied.headers
