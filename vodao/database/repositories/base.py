"""Base repository class for common database operations."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, TypeVar, Generic, Union
from uuid import UUID
import asyncpg
import structlog

from vodao.database.connections import DatabaseManager


logger = structlog.get_logger(__name__)

T = TypeVar('T')


def _to_db_value(value: Any) -> Any:
    """Unwrap enums so asyncpg receives plain values."""
    if isinstance(value, Enum):
        return value.value
    return value


def _parse_status_count(status: str) -> int:
    """Read the row count from a command tag such as 'DELETE 3' or 'UPDATE 1'."""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


class BaseRepository(ABC, Generic[T]):
    """Base repository class providing common database operations."""

    def __init__(self, db_manager: DatabaseManager, table_name: str):
        """
        Initialize base repository.

        Args:
            db_manager: Database manager instance
            table_name: Name of the database table
        """
        self.db_manager = db_manager
        self.table_name = table_name
        self.logger = logger.bind(component=f"{table_name}_repository")

    @abstractmethod
    def _row_to_model(self, row: asyncpg.Record) -> T:
        """Convert database row to model instance."""
        pass

    @abstractmethod
    def _model_to_dict(self, model: T) -> Dict[str, Any]:
        """Convert model instance to dictionary for database storage."""
        pass

    @staticmethod
    def _where(filters: Dict[str, Any], offset: int = 0) -> Tuple[str, List[Any]]:
        """Build an AND-ed equality clause with numbered placeholders."""
        clauses = [f"{column} = ${i + 1 + offset}" for i, column in enumerate(filters)]
        values = [_to_db_value(value) for value in filters.values()]
        return " AND ".join(clauses), values

    async def find_by_id(self, id_value: Union[str, int, UUID]) -> Optional[T]:
        """
        Find a record by its ID.

        Args:
            id_value: The ID to search for

        Returns:
            Model instance if found, None otherwise
        """
        try:
            async with self.db_manager.get_postgres_connection() as conn:
                query = f"SELECT * FROM {self.table_name} WHERE id = $1"
                row = await conn.fetchrow(query, id_value)

                if row:
                    return self._row_to_model(row)
                return None

        except Exception as e:
            self.logger.error("Error finding record by ID",
                              table=self.table_name, id=str(id_value), error=str(e))
            raise

    async def find_one_by(self, **filters: Any) -> Optional[T]:
        """
        Find the first record whose columns equal the given values.

        Returns:
            Model instance if found, None otherwise
        """
        where_clause, values = self._where(filters)
        try:
            async with self.db_manager.get_postgres_connection() as conn:
                query = f"SELECT * FROM {self.table_name} WHERE {where_clause} LIMIT 1"
                row = await conn.fetchrow(query, *values)

                if row:
                    return self._row_to_model(row)
                return None

        except Exception as e:
            self.logger.error("Error finding record",
                              table=self.table_name, filters=list(filters), error=str(e))
            raise

    async def find_by_criteria(self,
                               where_clause: str,
                               params: Optional[List[Any]] = None,
                               order_by: str = "id",
                               limit: int = 1000,
                               offset: int = 0) -> List[T]:
        """
        Find records matching criteria.

        Args:
            where_clause: WHERE clause (without WHERE keyword)
            params: Parameters for the WHERE clause
            order_by: ORDER BY clause
            limit: Maximum number of records
            offset: Number of records to skip

        Returns:
            List of matching model instances
        """
        try:
            params = params or []

            query = f"""
                SELECT * FROM {self.table_name}
                WHERE {where_clause}
                ORDER BY {order_by}
                LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
            """

            async with self.db_manager.get_postgres_connection() as conn:
                rows = await conn.fetch(query, *params, limit, offset)

                return [self._row_to_model(row) for row in rows]

        except Exception as e:
            self.logger.error("Error finding records by criteria",
                              table=self.table_name, error=str(e))
            raise

    async def count(self, where_clause: str = "", params: Optional[List[Any]] = None) -> int:
        """
        Count records in the table.

        Args:
            where_clause: Optional WHERE clause (without WHERE keyword)
            params: Parameters for the WHERE clause
        """
        try:
            params = params or []

            if where_clause:
                query = f"SELECT COUNT(*) FROM {self.table_name} WHERE {where_clause}"
            else:
                query = f"SELECT COUNT(*) FROM {self.table_name}"

            async with self.db_manager.get_postgres_connection() as conn:
                return await conn.fetchval(query, *params)

        except Exception as e:
            self.logger.error("Error counting records",
                              table=self.table_name, error=str(e))
            raise

    async def create(self, model: T) -> T:
        """
        Create a new record.

        Args:
            model: Model instance to create

        Returns:
            Created model instance with database-generated fields
        """
        try:
            data = self._model_to_dict(model)

            # Let column defaults apply to unset fields
            filtered_data = {k: _to_db_value(v) for k, v in data.items() if v is not None}

            columns = list(filtered_data.keys())
            placeholders = [f"${i+1}" for i in range(len(columns))]
            values = list(filtered_data.values())

            query = f"""
                INSERT INTO {self.table_name} ({', '.join(columns)})
                VALUES ({', '.join(placeholders)})
                RETURNING *
            """

            async with self.db_manager.get_postgres_connection() as conn:
                row = await conn.fetchrow(query, *values)
                created_model = self._row_to_model(row)

                self.logger.info("Record created",
                                 table=self.table_name, id=str(getattr(created_model, 'id', None)))

                return created_model

        except Exception as e:
            self.logger.error("Error creating record",
                              table=self.table_name, error=str(e))
            raise

    async def create_many(self, models: List[T]) -> List[T]:
        """
        Insert several records with a single statement.

        Args:
            models: Model instances to insert, all mapping to the same columns

        Returns:
            Created model instances, in insertion order
        """
        if not models:
            return []

        try:
            rows_data = [self._model_to_dict(model) for model in models]
            columns = list(rows_data[0].keys())

            values: List[Any] = []
            groups = []
            for data in rows_data:
                start = len(values)
                groups.append("(" + ", ".join(f"${start + i + 1}" for i in range(len(columns))) + ")")
                values.extend(_to_db_value(data.get(column)) for column in columns)

            query = f"""
                INSERT INTO {self.table_name} ({', '.join(columns)})
                VALUES {', '.join(groups)}
                RETURNING *
            """

            async with self.db_manager.get_postgres_connection() as conn:
                rows = await conn.fetch(query, *values)

            created = [self._row_to_model(row) for row in rows]
            self.logger.info("Records created", table=self.table_name, count=len(created))
            return created

        except Exception as e:
            self.logger.error("Error creating records",
                              table=self.table_name, count=len(models), error=str(e))
            raise

    async def update(self, id_value: Union[str, int, UUID], updates: Dict[str, Any]) -> Optional[T]:
        """
        Update a record by ID.

        None values are written as NULL, so a field can be cleared.

        Args:
            id_value: ID of the record to update
            updates: Dictionary of fields to update

        Returns:
            Updated model instance if found, None otherwise
        """
        try:
            if not updates:
                return await self.find_by_id(id_value)

            set_clauses = [f"{col} = ${i+2}" for i, col in enumerate(updates.keys())]
            values = [id_value] + [_to_db_value(v) for v in updates.values()]

            query = f"""
                UPDATE {self.table_name}
                SET {', '.join(set_clauses)}
                WHERE id = $1
                RETURNING *
            """

            async with self.db_manager.get_postgres_connection() as conn:
                row = await conn.fetchrow(query, *values)

                if row:
                    updated_model = self._row_to_model(row)
                    self.logger.info("Record updated",
                                     table=self.table_name, id=str(id_value))
                    return updated_model

                return None

        except Exception as e:
            self.logger.error("Error updating record",
                              table=self.table_name, id=str(id_value), error=str(e))
            raise

    async def update_where(self, filters: Dict[str, Any], updates: Dict[str, Any]) -> int:
        """
        Update every record matching the filters.

        Returns:
            Number of updated records
        """
        set_clauses = [f"{col} = ${i+1}" for i, col in enumerate(updates.keys())]
        where_clause, where_values = self._where(filters, offset=len(updates))
        values = [_to_db_value(v) for v in updates.values()] + where_values

        query = f"""
            UPDATE {self.table_name}
            SET {', '.join(set_clauses)}
            WHERE {where_clause}
        """

        try:
            async with self.db_manager.get_postgres_connection() as conn:
                result = await conn.execute(query, *values)

            updated = _parse_status_count(result)
            self.logger.info("Records updated", table=self.table_name, count=updated)
            return updated

        except Exception as e:
            self.logger.error("Error updating records",
                              table=self.table_name, filters=list(filters), error=str(e))
            raise

    async def delete(self, id_value: Union[str, int, UUID]) -> bool:
        """
        Delete a record by ID.

        Returns:
            True if record was deleted, False if not found
        """
        try:
            query = f"DELETE FROM {self.table_name} WHERE id = $1"

            async with self.db_manager.get_postgres_connection() as conn:
                result = await conn.execute(query, id_value)

                deleted = _parse_status_count(result) == 1

                if deleted:
                    self.logger.info("Record deleted",
                                     table=self.table_name, id=str(id_value))

                return deleted

        except Exception as e:
            self.logger.error("Error deleting record",
                              table=self.table_name, id=str(id_value), error=str(e))
            raise

    async def delete_where(self, **filters: Any) -> int:
        """
        Delete every record matching the filters.

        Returns:
            Number of deleted records
        """
        where_clause, values = self._where(filters)
        try:
            query = f"DELETE FROM {self.table_name} WHERE {where_clause}"

            async with self.db_manager.get_postgres_connection() as conn:
                result = await conn.execute(query, *values)

            deleted = _parse_status_count(result)
            self.logger.debug("Records deleted", table=self.table_name, count=deleted)
            return deleted

        except Exception as e:
            self.logger.error("Error deleting records",
                              table=self.table_name, filters=list(filters), error=str(e))
            raise

    async def exists(self, id_value: Union[str, int, UUID]) -> bool:
        """
        Check if a record exists by ID.

        Returns:
            True if record exists, False otherwise
        """
        try:
            query = f"SELECT 1 FROM {self.table_name} WHERE id = $1 LIMIT 1"

            async with self.db_manager.get_postgres_connection() as conn:
                result = await conn.fetchval(query, id_value)
                return result is not None

        except Exception as e:
            self.logger.error("Error checking record existence",
                              table=self.table_name, id=str(id_value), error=str(e))
            raise


def utcnow() -> datetime:
    """Timezone-aware current time for timestamp columns."""
    return datetime.now(timezone.utc)
