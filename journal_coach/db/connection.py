"""PostgreSQL connection pool for the progress store"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from journal_coach.config import DATABASE_URL, DB_POOL_MAX_SIZE, DB_POOL_MIN_SIZE, STORE_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class Database:
    """
    Owns the AsyncConnectionPool used by PostgresStore.

    Rows come back as dicts (dict_row) so they map straight onto the
    pydantic models. Waiting for a free connection is bounded by
    STORE_TIMEOUT_SECONDS; psycopg_pool raises PoolTimeout (an
    OperationalError) past that, which the store reports as unavailable.
    """

    def __init__(
        self,
        connection_string: str = DATABASE_URL,
        min_size: int = DB_POOL_MIN_SIZE,
        max_size: int = DB_POOL_MAX_SIZE,
    ):
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[AsyncConnectionPool] = None

    async def init_pool(self) -> None:
        logger.info(f"Opening progress store pool (min={self.min_size}, max={self.max_size})")
        pool = AsyncConnectionPool(
            self.connection_string,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=STORE_TIMEOUT_SECONDS,
            name="journal_coach",
            open=False
        )
        await pool.open()
        self._pool = pool

    async def close_pool(self) -> None:
        if self._pool:
            logger.info("Closing progress store pool")
            await self._pool.close()
            self._pool = None

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Borrow a connection; it goes back to the pool on exit"""
        if not self._pool:
            raise RuntimeError("Database pool not initialized")

        async with self._pool.connection() as conn:
            conn.row_factory = dict_row
            yield conn


# Shared by the API process
db = Database()
