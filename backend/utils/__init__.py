"""
Shared helpers: param normalization, Mongo filter building, input
sanitization and the per-blueprint rate limit tiers.
"""
from .rate_limiter import RATE_LIMITS, apply_tier, init_limiter

__all__ = ['RATE_LIMITS', 'apply_tier', 'init_limiter']
