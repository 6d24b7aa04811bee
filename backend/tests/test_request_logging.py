import logging

from flask import Flask, jsonify

from api.middleware.request_logging import setup_request_logging_middleware
from config import Config


def _build_test_app():
    app = Flask(__name__)

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    @app.route("/api/broken", methods=["GET"])
    def broken():
        return jsonify({"error": "boom"}), 500

    setup_request_logging_middleware(app)
    return app


def _configure(monkeypatch, sample_rate, endpoints=""):
    monkeypatch.setattr(Config, "REQUEST_LOG_ENABLED", True)
    monkeypatch.setattr(Config, "REQUEST_LOG_SAMPLE_RATE", sample_rate)
    monkeypatch.setattr(Config, "REQUEST_LOG_ENDPOINTS", endpoints)


def _logged(caplog, path):
    return any(f"api_request path={path}" in record.getMessage() for record in caplog.records)


def test_request_logging_sample_rate(monkeypatch, caplog):
    _configure(monkeypatch, 1.0)
    client = _build_test_app().test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        response = client.get("/api/health")

    assert response.status_code == 200
    assert _logged(caplog, "/api/health")


def test_request_logging_watchlist(monkeypatch, caplog):
    _configure(monkeypatch, 0.0, "/api/health")
    client = _build_test_app().test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        response = client.get("/api/health")

    assert response.status_code == 200
    assert _logged(caplog, "/api/health")


def test_request_logging_skips_unsampled(monkeypatch, caplog):
    _configure(monkeypatch, 0.0)
    client = _build_test_app().test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        client.get("/api/health")

    assert not _logged(caplog, "/api/health")


def test_server_errors_always_logged(monkeypatch, caplog):
    _configure(monkeypatch, 0.0)
    client = _build_test_app().test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        response = client.get("/api/broken")

    assert response.status_code == 500
    assert _logged(caplog, "/api/broken")


def test_request_logging_disabled(monkeypatch, caplog):
    _configure(monkeypatch, 1.0)
    monkeypatch.setattr(Config, "REQUEST_LOG_ENABLED", False)
    client = _build_test_app().test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        client.get("/api/broken")

    assert not _logged(caplog, "/api/broken")
