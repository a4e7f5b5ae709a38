"""Async PostgreSQL engine, session scopes, and the Redis quote-cache client.

Sessions commit when the unit of work succeeds and roll back otherwise. The
same scope serves FastAPI requests (get_session) and scheduled jobs
(session_scope).
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncGenerator

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from carteira.config import settings

logger = logging.getLogger(__name__)

engine: AsyncEngine = create_async_engine(
    settings.db.database_url,
    echo=settings.log_level == "DEBUG",
    pool_pre_ping=True,
    pool_recycle=3600,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@contextlib.asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """One unit of work: commit on success, roll back and re-raise on failure."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency wrapping session_scope for the duration of a request."""
    async with session_scope() as session:
        yield session


# ── Quote cache ──────────────────────────────────────────────────────

redis_client: aioredis.Redis = aioredis.from_url(
    settings.db.redis_url,
    decode_responses=True,
)


async def get_redis() -> aioredis.Redis:
    """FastAPI dependency: the shared quote-cache client."""
    return redis_client


async def quote_cache_available() -> bool:
    """Ping Redis; the app keeps serving live quotes when it is down."""
    try:
        return bool(await redis_client.ping())
    except (RedisError, OSError):
        logger.warning("Quote cache unreachable at startup/health check")
        return False


# ── Lifespan ─────────────────────────────────────────────────────────


async def init_db() -> None:
    """Open a connection and, outside production, create the holding tables."""
    async with engine.begin() as conn:
        from carteira.models import Base

        if not settings.is_production:
            await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
    await redis_client.aclose()


@contextlib.asynccontextmanager
async def db_lifespan() -> AsyncGenerator[None, None]:
    """Database and cache lifecycle for the FastAPI lifespan."""
    await init_db()
    try:
        yield
    finally:
        await close_db()
