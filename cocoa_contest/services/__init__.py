"""
Services module for the Cocoa Contest Evaluation Engine.
"""

from cocoa_contest.services.cache import get_cache
from cocoa_contest.services.redis_cache import RedisCache

__all__ = [
    "get_cache",
    "RedisCache",
]
