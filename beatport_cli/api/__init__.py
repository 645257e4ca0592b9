"""
Store API Layer.

This package handles all communication with the Beatport and Beatsource
catalog APIs.
"""

from .auth import BeatportAuthenticator
from .client import CatalogClient
from .rate_limiter import AdaptiveRateLimiter

__all__ = ["AdaptiveRateLimiter", "BeatportAuthenticator", "CatalogClient"]
