import logging
from types import SimpleNamespace

from flask import Flask, jsonify

from api.middleware import CommandTimingListener
from api.middleware.query_timing import get_request_timing, setup_query_timing_middleware
from api.middleware.request_id import setup_request_id_middleware


def _event(command="aggregate", micros=12500, ns="mplads.expenditures"):
    return SimpleNamespace(
        command_name=command,
        duration_micros=micros,
        database_name="mplads",
        reply={"cursor": {"ns": ns, "firstBatch": []}},
        failure={"errmsg": "boom"},
    )


def _build_test_app(listener, events):
    app = Flask(__name__)
    setup_request_id_middleware(app)
    setup_query_timing_middleware(app)

    @app.route("/api/work", methods=["GET"])
    def work():
        for event in events:
            listener.succeeded(event)
        return jsonify(get_request_timing())

    return app


def test_timing_headers_sum_commands():
    listener = CommandTimingListener(slow_threshold_ms=10_000)
    client = _build_test_app(listener, [_event(micros=12500), _event(micros=2500)]).test_client()

    response = client.get("/api/work")

    assert response.headers["X-Query-Count"] == "2"
    assert response.headers["X-DB-Time-Ms"] == "15.0"
    assert response.get_json()["query_count"] == 2


def test_handshake_commands_ignored():
    listener = CommandTimingListener(slow_threshold_ms=10_000)
    client = _build_test_app(listener, [_event(command="ping"), _event(command="hello")]).test_client()

    response = client.get("/api/work")

    assert "X-Query-Count" not in response.headers


def test_slow_command_logged_with_collection(caplog):
    listener = CommandTimingListener(slow_threshold_ms=5)
    client = _build_test_app(listener, [_event(micros=9000)]).test_client()

    with caplog.at_level(logging.WARNING, logger="mongo.timing"):
        client.get("/api/work")

    messages = [r.getMessage() for r in caplog.records if "SLOW_QUERY" in r.getMessage()]
    assert messages
    assert "collection=mplads.expenditures" in messages[0]


def test_commands_outside_requests_are_not_recorded():
    listener = CommandTimingListener(slow_threshold_ms=10_000)
    listener.succeeded(_event())
    listener.failed(_event())

    assert get_request_timing("no-such-request")["query_count"] == 0
