"""
Canonical MongoDB client factory.

This is the SINGLE SOURCE OF TRUTH for MongoClient creation. The Flask app,
scripts and the integration tests all get their client from here so that
timeouts, the app name and the command listeners are set in one place.

Usage:
    from db.mongo import get_client, get_database

    client = get_client()
    db = get_database(client)
    rows = list(db['summaries'].aggregate(pipeline))

Warmup with retry:
    - Handles replica-set elections and slow Atlas cold starts
    - Exponential backoff (0.75s, 1.5s, 3s, 6s)
    - Fails fast after 4 attempts with clear error
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Iterable, Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

log = logging.getLogger(__name__)

# Module-level client cache (per-process singleton; MongoClient is thread-safe)
_CLIENT: Optional[MongoClient] = None
_CLIENT_LOCK = threading.Lock()


def _client_options() -> Dict[str, Any]:
    """Client options from Config (single source of truth)."""
    from config import Config

    return {
        'serverSelectionTimeoutMS': Config.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
        'appname': Config.MONGODB_APP_NAME,
        'tz_aware': True,
    }


def _warmup(client: MongoClient, attempts: int = 4, base_sleep: float = 0.75) -> None:
    """
    Ping the deployment with exponential backoff retry.

    Args:
        client: MongoClient to warm up
        attempts: Number of retry attempts (default 4)
        base_sleep: Base sleep time in seconds (doubles each attempt)

    Raises:
        PyMongoError: If all attempts fail
    """
    last_error: Optional[Exception] = None

    for i in range(attempts):
        try:
            client.admin.command('ping')
            log.info("mongo_warmup_success attempt=%d", i + 1)
            return
        except PyMongoError as e:
            last_error = e
            sleep_s = base_sleep * (2 ** i)
            log.warning(
                "mongo_warmup_retry attempt=%d/%d sleep_s=%.2f err=%s",
                i + 1, attempts, sleep_s, str(e)[:100]
            )
            time.sleep(sleep_s)

    log.error("mongo_warmup_failed after %d attempts", attempts)
    raise last_error  # type: ignore[misc]


def create_client(
    uri: Optional[str] = None,
    event_listeners: Iterable[Any] = (),
    warmup: bool = True,
) -> MongoClient:
    """
    Create a new MongoClient with the configured options.

    Args:
        uri: Connection string (defaults to Config.MONGODB_URI)
        event_listeners: pymongo monitoring listeners (e.g. command timing)
        warmup: Ping with retry before returning

    Raises:
        PyMongoError: If warmup is requested and the deployment is unreachable
    """
    from config import Config, describe_mongodb_target

    target = uri or Config.MONGODB_URI
    client = MongoClient(target, event_listeners=list(event_listeners), **_client_options())
    log.info("mongo_client_created target=%s", describe_mongodb_target(target))
    if warmup:
        _warmup(client)
    return client


def get_client(event_listeners: Iterable[Any] = ()) -> MongoClient:
    """
    Get the process-wide MongoClient, creating it on first use.

    Listeners are only applied when the client is first created.
    """
    global _CLIENT

    with _CLIENT_LOCK:
        if _CLIENT is None:
            _CLIENT = create_client(event_listeners=event_listeners)
        return _CLIENT


def get_database(client: MongoClient, database_name: Optional[str] = None) -> Database:
    """Get the analytics database (Config.MONGODB_DB unless named)."""
    from config import Config

    return client[database_name or Config.MONGODB_DB]


def close_client() -> None:
    """Close the cached client (tests, graceful shutdown)."""
    global _CLIENT

    with _CLIENT_LOCK:
        if _CLIENT is not None:
            _CLIENT.close()
            log.info("mongo_client_closed")
            _CLIENT = None
