"""Database connection management for the Vo Dao synchronization service."""

import json
from contextlib import asynccontextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Optional
import asyncpg
import structlog

from vodao.models.config import VodaoConfig


logger = structlog.get_logger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

# Connection of the transaction running in the current task, if any
_bound_connection: ContextVar[Optional[asyncpg.Connection]] = ContextVar(
    "vodao_bound_connection", default=None
)


class DatabaseManager:
    """Manages the PostgreSQL connection pool and transactions."""

    def __init__(self, config: VodaoConfig):
        """
        Initialize database manager with configuration.

        Args:
            config: Application configuration containing database settings
        """
        self.config = config
        self.logger = logger.bind(component="database_manager")

        self._postgres_pool: Optional[asyncpg.Pool] = None

        self._postgres_pool_config = {
            "min_size": max(1, config.db_pool_size // 2),
            "max_size": config.db_pool_size,
            "max_inactive_connection_lifetime": 300,
            "timeout": config.db_pool_timeout,
            "command_timeout": 60,
            "init": self._init_connection,
            "server_settings": {
                "application_name": "vodao_event_sync",
                "timezone": "UTC"
            }
        }

    async def initialize(self) -> None:
        """Create the connection pool and verify it."""
        try:
            self.logger.info("Creating PostgreSQL connection pool",
                             database_url=self._mask_password(self.config.database_url))

            self._postgres_pool = await asyncpg.create_pool(
                self.config.database_url,
                **self._postgres_pool_config
            )

            async with self._postgres_pool.acquire() as conn:
                version = await conn.fetchval("SELECT version()")
                self.logger.info("PostgreSQL connection verified", version=version[:50])

        except Exception as e:
            self.logger.error("Failed to initialize database connections", error=str(e))
            await self.cleanup()
            raise

    @staticmethod
    async def _init_connection(conn: asyncpg.Connection) -> None:
        """Register JSON codecs so jsonb columns map to Python dicts."""
        for type_name in ("json", "jsonb"):
            await conn.set_type_codec(
                type_name,
                encoder=lambda value: json.dumps(value, default=str),
                decoder=json.loads,
                schema="pg_catalog",
            )

    async def cleanup(self) -> None:
        """Close the connection pool."""
        if self._postgres_pool:
            try:
                await self._postgres_pool.close()
                self.logger.info("PostgreSQL pool closed")
            except Exception as e:
                self.logger.error("Error closing PostgreSQL pool", error=str(e))
            finally:
                self._postgres_pool = None

    @asynccontextmanager
    async def get_postgres_connection(self):
        """
        Get a PostgreSQL connection.

        Inside get_postgres_transaction() the transaction's connection is
        returned so that every repository call joins the transaction.

        Yields:
            asyncpg.Connection: Database connection
        """
        bound = _bound_connection.get()
        if bound is not None:
            yield bound
            return

        if not self._postgres_pool:
            raise RuntimeError("PostgreSQL pool not initialized")

        async with self._postgres_pool.acquire() as connection:
            try:
                yield connection
            except Exception as e:
                self.logger.error("Database operation error", error=str(e))
                raise

    @asynccontextmanager
    async def get_postgres_transaction(self):
        """
        Open a transaction, or a savepoint when one is already running.

        Yields:
            asyncpg.Connection: Database connection with active transaction
        """
        async with self.get_postgres_connection() as conn:
            async with conn.transaction():
                token = _bound_connection.set(conn)
                try:
                    yield conn
                finally:
                    _bound_connection.reset(token)

    async def apply_schema(self, schema_path: Path = SCHEMA_PATH) -> None:
        """Create the events tables if they do not exist."""
        sql = schema_path.read_text(encoding="utf-8")
        async with self.get_postgres_connection() as conn:
            await conn.execute(sql)
        self.logger.info("Schema applied", path=str(schema_path))

    async def health_check(self) -> Dict[str, Any]:
        """Check that the pool can run a query."""
        try:
            if not self._postgres_pool:
                return {"postgres": {"status": "not_initialized"}, "overall": "unhealthy"}
            async with self.get_postgres_connection() as conn:
                await conn.fetchval("SELECT 1")
            return {"postgres": {"status": "healthy"}, "overall": "healthy"}
        except Exception as e:
            return {"postgres": {"status": "unhealthy", "error": str(e)}, "overall": "unhealthy"}

    def _mask_password(self, database_url: str) -> str:
        """Mask password in database URL for logging."""
        try:
            if "://" in database_url and "@" in database_url:
                scheme, rest = database_url.split("://", 1)
                if "@" in rest:
                    auth, host_part = rest.split("@", 1)
                    if ":" in auth:
                        user, _ = auth.split(":", 1)
                        return f"{scheme}://{user}:***@{host_part}"
            return database_url
        except Exception:
            return "***"


# Global database manager instance
_database_manager: Optional[DatabaseManager] = None


async def initialize_database_manager(config: VodaoConfig) -> DatabaseManager:
    """
    Initialize the global database manager.

    Args:
        config: Application configuration

    Returns:
        DatabaseManager: Initialized database manager
    """
    global _database_manager

    if _database_manager is not None:
        await _database_manager.cleanup()

    _database_manager = DatabaseManager(config)
    await _database_manager.initialize()

    return _database_manager


def get_database_manager() -> DatabaseManager:
    """
    Get the global database manager instance.

    Raises:
        RuntimeError: If database manager not initialized
    """
    if _database_manager is None:
        raise RuntimeError("Database manager not initialized. Call initialize_database_manager() first.")

    return _database_manager


async def cleanup_database_manager() -> None:
    """Clean up the global database manager."""
    global _database_manager

    if _database_manager is not None:
        await _database_manager.cleanup()
        _database_manager = None
