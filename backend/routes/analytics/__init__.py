"""
Analytics API Routes - Split into domain-specific modules

This package organizes the analytics endpoints into logical domains:
- trends.py: Utilization, category and works trends over time
- performers.py: Top performing members by metric
- distribution.py: Utilization buckets and house comparison

All modules share the same blueprint (analytics_bp) registered at /api.
"""

from flask import Blueprint

# Create the shared blueprint
analytics_bp = Blueprint('analytics', __name__)


# Import all route modules to register their routes with the blueprint
from routes.analytics import trends  # noqa: E402,F401
from routes.analytics import performers  # noqa: E402,F401
from routes.analytics import distribution  # noqa: E402,F401
