"""Main FastAPI application"""
from datetime import datetime, timezone
import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1.api import api_router
from app.cache.redis_cache import RedisCache
from app.core.config import settings
from app.core.dependencies import get_cache
from app.db.init_db import init_db
from app.errors.handlers import (
    validation_exception_handler,
    sqlalchemy_exception_handler,
    general_exception_handler
)
from app.utils.logger import setup_file_logging

setup_file_logging(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO), settings.LOG_FILE)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Markdown note-taking API: registration with email verification, login and profile",
    version=settings.PROJECT_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url=f"{settings.API_PREFIX}/openapi.json"
)

# Created unconnected so that the app is usable even if startup never runs
app.state.cache = RedisCache(
    settings.REDIS_URL,
    socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
    connect_timeout=settings.REDIS_CONNECT_TIMEOUT,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.on_event("startup")
async def startup_event():
    """Initialize database and the transient store"""
    try:
        init_db()
        logger.warning(f"{settings.PROJECT_NAME} STARTED - Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        logger.warning(f"{settings.PROJECT_NAME} STARTED - Database initialization failed, but API is running")

    if not await app.state.cache.connect():
        logger.warning("Pending registrations cannot be stored; email verification is disabled")


@app.on_event("shutdown")
async def shutdown_event():
    await app.state.cache.disconnect()
    logger.warning(f"{settings.PROJECT_NAME} SHUTDOWN")


@app.get("/")
async def root():
    return {"message": "Welcome to the Markdown Note-Taking API"}


@app.get(f"{settings.API_PREFIX}/health")
async def health(cache: RedisCache = Depends(get_cache)):
    cache_up = await cache.ping()
    return {
        "status": "OK",
        "cache": "up" if cache_up else "down",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
