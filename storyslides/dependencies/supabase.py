# dependencies.py
from typing import Optional

import asyncio
import asyncpg
from supabase import create_client, Client

from storyslides.core.logger_config import setup_logger
from storyslides.core.config import settings
from storyslides.exceptions import PersistenceError

logger = setup_logger(__name__)

# Lazy singleton Supabase client (sync) and async PostgreSQL connection pool
_supabase: Optional[Client] = None
_async_pool: Optional[asyncpg.Pool] = None
_async_lock = asyncio.Lock()


def get_supabase_client() -> Client:
    """Get the service-role Supabase client (PostgREST tables and rpc)."""
    global _supabase
    if _supabase is None:
        try:
            _supabase = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
        except Exception as e:
            logger.error(f"Failed to create Supabase client: {e}")
            raise PersistenceError("Database unavailable", stage="connect_supabase") from e
        logger.info("Supabase sync client initialized")
    return _supabase


async def get_async_db_pool() -> asyncpg.Pool:
    """Get async PostgreSQL connection pool, used where a real transaction is needed."""
    global _async_pool
    if _async_pool is None:
        async with _async_lock:
            if _async_pool is None:
                try:
                    _async_pool = await asyncpg.create_pool(
                        settings.get_postgres_connection_string(),
                        min_size=1,
                        max_size=settings.MAX_CONCURRENT_DB_CONNECTIONS,
                        command_timeout=10
                    )
                except Exception as e:
                    logger.error(f"Failed to create async PostgreSQL pool: {e}")
                    raise PersistenceError("Database unavailable", stage="connect_pool") from e
                logger.info("Async PostgreSQL pool initialized")
    return _async_pool


async def close_async_db_pool() -> None:
    """Close the pool on application shutdown."""
    global _async_pool
    if _async_pool is not None:
        await _async_pool.close()
        _async_pool = None
        logger.info("Async PostgreSQL pool closed")
