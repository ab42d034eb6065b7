"""
PostgreSQL Client Wrapper

Thin asyncpg pool wrapper giving repositories a consistent access pattern and
translating storage uniqueness races into UniqueConstraintViolation.

Usage:
    from core.postgres_client import PostgresClient

    db = PostgresClient("campaign_service")

    async with db:
        rows = await db.query("SELECT * FROM campaign.campaigns WHERE tenant_id = $1", [tenant_id])
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import asyncpg

from core.config import InfraConfig

logger = logging.getLogger(__name__)


class UniqueConstraintViolation(Exception):
    """A write collided with a unique index"""

    def __init__(self, constraint: Optional[str], message: str = ""):
        self.constraint = constraint
        super().__init__(message or f"Unique constraint violated: {constraint}")


class PostgresClient:
    """
    asyncpg connection pool for one service.

    The pool is created lazily on first use; ``async with client`` guarantees
    it exists and leaves it open for reuse.
    """

    def __init__(self, service_name: str, config: Optional[InfraConfig] = None):
        self.service_name = service_name
        self.config = config or InfraConfig.from_env()
        self._pool: Optional[asyncpg.Pool] = None
        self._pool_lock: Optional[asyncio.Lock] = None

        logger.info(
            f"PostgreSQL client initialized for {service_name}: "
            f"{self.config.postgres_host}:{self.config.postgres_port}/{self.config.postgres_db}"
        )

    async def connect(self) -> None:
        if self._pool is not None:
            return
        if self._pool_lock is None:
            self._pool_lock = asyncio.Lock()
        async with self._pool_lock:
            if self._pool is not None:
                return
            self._pool = await asyncpg.create_pool(
                dsn=self.config.postgres_dsn,
                min_size=self.config.postgres_min_pool,
                max_size=self.config.postgres_max_pool,
            )
        logger.info(f"PostgreSQL pool opened for {self.service_name}")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info(f"PostgreSQL pool closed for {self.service_name}")

    async def __aenter__(self) -> "PostgresClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    async def health_check(self) -> bool:
        try:
            return await self.query_row("SELECT 1 AS healthy") is not None
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False

    async def query(self, sql: str, params: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
        """Execute query and return all rows as dicts"""
        await self.connect()
        try:
            rows = await self._pool.fetch(sql, *(params or []))
        except asyncpg.exceptions.UniqueViolationError as e:
            raise UniqueConstraintViolation(e.constraint_name, str(e)) from e
        return [dict(row) for row in rows]

    async def query_row(self, sql: str, params: Optional[List[Any]] = None) -> Optional[Dict[str, Any]]:
        """Execute query and return first row, or None"""
        await self.connect()
        try:
            row = await self._pool.fetchrow(sql, *(params or []))
        except asyncpg.exceptions.UniqueViolationError as e:
            raise UniqueConstraintViolation(e.constraint_name, str(e)) from e
        return dict(row) if row is not None else None

    async def execute(self, sql: str, params: Optional[List[Any]] = None) -> str:
        """Execute a statement and return its status tag (e.g. 'UPDATE 1')"""
        await self.connect()
        try:
            return await self._pool.execute(sql, *(params or []))
        except asyncpg.exceptions.UniqueViolationError as e:
            raise UniqueConstraintViolation(e.constraint_name, str(e)) from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Yield a connection inside a transaction; commits on clean exit"""
        await self.connect()
        async with self._pool.acquire() as connection:
            try:
                async with connection.transaction():
                    yield connection
            except asyncpg.exceptions.UniqueViolationError as e:
                raise UniqueConstraintViolation(e.constraint_name, str(e)) from e


def affected_rows(status: str) -> int:
    """Row count from an asyncpg status tag such as 'UPDATE 3'"""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


__all__ = ["PostgresClient", "UniqueConstraintViolation", "affected_rows"]
