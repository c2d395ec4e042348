"""FastAPI dependencies"""
from typing import Generator
from fastapi import Request
from app.cache.redis_cache import RedisCache
from app.db.session import SessionLocal


def get_db() -> Generator:
    """
    Database session dependency
    Yields a database session and ensures it's closed after use
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_cache(request: Request) -> RedisCache:
    """The process-wide transient store created at startup"""
    return request.app.state.cache
