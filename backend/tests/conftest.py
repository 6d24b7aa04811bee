"""
Root pytest configuration for backend tests.

Provides:
- Shared fixtures (store, app, client)
- RecordingStore: an in-process RecordStore that records every pipeline it
  is asked to run and answers from a responder function (exposed as the
  `recording_store` fixture so test modules need not import conftest)
"""

import sys
import threading
from pathlib import Path

# Add backend directory to Python path so imports like
# `from services.pipelines import ...` and `from utils.normalize import ...` work
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest


def _ops(pipeline):
    return [next(iter(stage)) for stage in pipeline]


class RecordingStore:
    """
    RecordStore test double.

    responder(collection, pipeline) -> rows decides what each aggregate()
    returns (empty list when no responder is given). Setting `error` makes
    every call raise it.
    """

    def __init__(self, responder=None, distinct_values=None, error=None):
        self.responder = responder
        self.distinct_values = distinct_values or {}
        self.error = error
        self.calls = []
        self.distinct_calls = []
        self._lock = threading.Lock()

    def aggregate(self, collection, pipeline):
        with self._lock:
            self.calls.append((collection, pipeline))
        if self.error is not None:
            raise self.error
        if self.responder is None:
            return []
        return list(self.responder(collection, pipeline))

    def distinct(self, collection, field, query=None):
        with self._lock:
            self.distinct_calls.append((collection, field, query))
        if self.error is not None:
            raise self.error
        return list(self.distinct_values.get((collection, field), []))

    def ping(self):
        if self.error is not None:
            raise self.error
        return True

    def pipelines_for(self, collection):
        return [pipeline for name, pipeline in self.calls if name == collection]

    def pipelines_with(self, op):
        """Recorded pipelines containing a stage operator ('$lookup', '$count', ...)."""
        return [pipeline for _, pipeline in self.calls if op in _ops(pipeline)]


@pytest.fixture
def recording_store():
    """RecordingStore class, for tests that need a custom responder."""
    return RecordingStore


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def make_app():
    """Factory for apps served from a given store."""
    from app import create_app

    def _make(store, **overrides):
        config = {'TESTING': True, 'RATELIMIT_ENABLED': False}
        config.update(overrides)
        return create_app(store=store, config_overrides=config)

    return _make


@pytest.fixture
def app(make_app, store):
    """Create test Flask application."""
    return make_app(store)


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
