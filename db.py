# db.py
from loguru import logger
from psycopg_pool import AsyncConnectionPool
from psycopg.rows import dict_row

from config import DATABASE_URL
from errors import MarketplaceError

# Global pool, opened on first use and closed from the app lifespan
_pool: AsyncConnectionPool | None = None


async def open_pool() -> AsyncConnectionPool:
    global _pool

    if _pool is None:
        logger.info("Initializing database connection pool")
        _pool = AsyncConnectionPool(
            conninfo=DATABASE_URL,
            kwargs={"row_factory": dict_row},  # rows come back as dicts, e.g. row["id"]
            open=False,
        )
        try:
            await _pool.open()
            logger.info("Database connection pool opened")
        except Exception:
            logger.exception("Could not open the database connection pool")
            _pool = None
            raise
    return _pool


async def close_pool():
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Database connection pool closed")


async def getDB():
    """
    FastAPI dependency yielding one pooled connection per request.

    The connection is returned to the pool (and its transaction committed,
    or rolled back on error) when the request finishes.
    """
    pool = await open_pool()
    if pool is None:
        raise MarketplaceError("Database connection pool is not available.")

    async with pool.connection() as conn:
        yield conn
