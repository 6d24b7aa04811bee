"""
Flask Application Factory - MPLADS Analytics API

All analytics are computed as MongoDB aggregation pipelines over the
summaries, expenditures and works collections. Nothing is held in memory
between requests; every view reads through the app's record store.

The API is public and read-only (no authentication, GET only).
"""

import logging

from flask import Flask, jsonify
from flask_cors import CORS

from config import Config, describe_mongodb_target

logger = logging.getLogger(__name__)


def _cors_origins():
    raw = (Config.CORS_ORIGINS or '*').strip()
    if raw == '*':
        return '*'
    return [origin.strip() for origin in raw.split(',') if origin.strip()]


def _create_store():
    """Connect to MongoDB with command timing attached and wrap the database."""
    from api.middleware import CommandTimingListener
    from db import MongoRecordStore, get_client, get_database

    client = get_client(event_listeners=[CommandTimingListener()])
    return MongoRecordStore(get_database(client))


def create_app(store=None, config_overrides=None):
    """
    Build the API app.

    Args:
        store: RecordStore to serve from. When omitted a MongoDB client is
            created from Config (and warmed up) on startup.
        config_overrides: Extra Flask config applied before extensions are
            initialised (tests use this for TESTING / RATELIMIT_ENABLED).
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Flask-CORS handles all CORS headers, including on error responses
    CORS(app,
         resources={r"/api/*": {"origins": _cors_origins()}},
         methods=["GET", "OPTIONS"],
         allow_headers=["Content-Type", "X-Request-ID"],
         expose_headers=["X-Request-ID", "X-DB-Time-Ms", "X-Query-Count", "X-Elapsed-Ms",
                         "X-Export-Rows", "X-Export-Truncated", "Content-Disposition"],
         supports_credentials=False)

    # === API CONTRACT MIDDLEWARE ===
    # Order matters: after_request hooks run in reverse, so the timing headers
    # are set before the request logger reads them.
    from api.middleware import (
        setup_error_handlers,
        setup_query_timing_middleware,
        setup_request_id_middleware,
        setup_request_logging_middleware,
    )
    setup_request_id_middleware(app)
    setup_request_logging_middleware(app)
    setup_query_timing_middleware(app)
    setup_error_handlers(app)

    # Record store
    if store is None:
        store = _create_store()
        print(f"   ✓ MongoDB connected: {describe_mongodb_target()} / {Config.MONGODB_DB}")
    app.extensions['record_store'] = store

    # Register routes (all public, all under /api)
    from routes.analytics import analytics_bp
    from routes.expenditures import expenditures_bp
    from routes.export import export_bp
    from routes.summary import summary_bp
    from routes.works import works_bp

    app.register_blueprint(analytics_bp, url_prefix='/api')
    app.register_blueprint(expenditures_bp, url_prefix='/api')
    app.register_blueprint(summary_bp, url_prefix='/api')
    app.register_blueprint(works_bp, url_prefix='/api')
    app.register_blueprint(export_bp, url_prefix='/api')

    # Rate limiter (per client IP, tiered by aggregation cost)
    from utils.rate_limiter import apply_tier, init_limiter
    limiter = init_limiter(app)
    apply_tier(limiter, analytics_bp, "analytics")
    apply_tier(limiter, expenditures_bp, "analytics")
    apply_tier(limiter, works_bp, "analytics")
    apply_tier(limiter, summary_bp, "lookup")
    apply_tier(limiter, export_bp, "export")
    app.limiter = limiter
    print("   ✓ Rate limiter initialized")

    @app.route("/api/health", methods=["GET"])
    @limiter.exempt
    def health():
        record_store = app.extensions['record_store']
        ping = getattr(record_store, 'ping', None)
        if ping is not None:
            ping()
        return jsonify({"status": "ok", "database": Config.MONGODB_DB})

    return app


def run_app():
    """Main entry point for local development - starts server with Flask's dev server."""
    print("=" * 60)
    print("Starting Flask API - MPLADS Analytics")
    print("=" * 60)

    app = create_app()

    print("=" * 60)
    app.run(debug=Config.DEBUG, host="0.0.0.0", port=5000)


if __name__ == "__main__":
    run_app()
