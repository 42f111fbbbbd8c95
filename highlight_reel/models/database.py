import asyncio
import logging
from functools import lru_cache
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from highlight_reel.config import get_settings
from highlight_reel.models.base import Base

logger = logging.getLogger(__name__)


def create_engine_for_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine. Pool limits only apply to server databases."""
    kwargs: dict[str, Any] = {"echo": echo}
    if not database_url.startswith("sqlite"):
        kwargs.update(
            pool_size=5,
            max_overflow=0,  # queue instead of exceeding the connection limit
            pool_pre_ping=True,
            pool_recycle=300,
            pool_timeout=30,
        )
    return create_async_engine(database_url, **kwargs)


@lru_cache
def get_engine() -> AsyncEngine:
    settings = get_settings()
    return create_engine_for_url(settings.database_url, echo=settings.database_echo)


@lru_cache
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create tables (development only) with retry logic for connection failures."""
    engine = engine or get_engine()
    max_retries = 5
    retry_delay = 2  # seconds

    for attempt in range(max_retries):
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            return
        except Exception as e:
            if attempt < max_retries - 1:
                logger.warning(
                    f"DB connection attempt {attempt + 1}/{max_retries} failed: {e}. "
                    f"Retrying in {retry_delay} seconds..."
                )
                await asyncio.sleep(retry_delay)
                retry_delay *= 2  # Exponential backoff
            else:
                logger.error(f"Failed to connect to database after {max_retries} attempts")
                raise

