"""
Rate Limiter Configuration

Public, unauthenticated analytics API: limits are per client IP and tiered
by how expensive an endpoint's aggregations are. Uses Redis in production,
memory storage for development.

Key decisions:
- IP-based key (X-Forwarded-For aware when behind one trusted proxy)
- Tiered limits by endpoint cost
- Rate-limit responses use the standard error envelope
"""

import logging
from flask import request

logger = logging.getLogger(__name__)


def _storage_uri() -> str:
    """Redis in production, memory for dev."""
    from config import Config

    if Config.REDIS_URL:
        logger.info("Rate limiter using Redis storage")
        return Config.REDIS_URL
    logger.warning("Rate limiter using in-memory storage (dev only)")
    return "memory://"


def get_rate_limit_key():
    """
    Get rate limit key - the first X-Forwarded-For hop, else remote_addr.
    """
    forwarded = request.headers.get("X-Forwarded-For", "")
    client = forwarded.split(",")[0].strip() if forwarded else None
    return f"ip:{client or request.remote_addr}"


# Per-endpoint rate limits (tune by computational cost)
# Format: "X per period" where period is minute, hour, day
RATE_LIMITS = {
    # Distinct lookups and summary-row reads
    "lookup": "200 per minute",

    # Aggregation pipelines over raw records
    "analytics": "60 per minute",

    # Full result-set CSV downloads
    "export": "10 per minute",
}

# Default limits for unannotated endpoints
DEFAULT_LIMITS = ["1000 per day", "300 per hour"]


def init_limiter(app):
    """
    Initialize Flask-Limiter with the app.

    Call this in app.py after creating the Flask app:
        from utils.rate_limiter import init_limiter
        limiter = init_limiter(app)

    Returns the limiter instance for decorator use.
    """
    from flask_limiter import Limiter

    from api.middleware.error_envelope import make_error_response

    storage_uri = _storage_uri()
    limiter = Limiter(
        key_func=get_rate_limit_key,
        app=app,
        default_limits=DEFAULT_LIMITS,
        storage_uri=storage_uri,
        key_prefix="rate_limit",
        # Return 429 with retry-after header
        headers_enabled=True,
    )

    @app.errorhandler(429)
    def ratelimit_handler(e):
        return make_error_response(
            "TOO_MANY_REQUESTS",
            f"Rate limit exceeded: {e.description}",
            status_code=429,
            hint="Retry after the period given in the Retry-After header",
        )

    logger.info(f"Rate limiter initialized with storage: {storage_uri}")
    return limiter


def apply_tier(limiter, blueprint, tier: str) -> None:
    """
    Apply a RATE_LIMITS tier to every route of a blueprint.

    Usage (app.py, after blueprints are registered):
        apply_tier(limiter, export_bp, "export")
    """
    limiter.limit(RATE_LIMITS[tier])(blueprint)
    logger.info(f"Rate limit tier {tier} ({RATE_LIMITS[tier]}) applied to {blueprint.name}")
