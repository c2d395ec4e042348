"""Transient key-value store"""
from app.cache.redis_cache import RedisCache

__all__ = ["RedisCache"]
