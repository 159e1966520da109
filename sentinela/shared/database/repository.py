"""Base repository pattern for read access to PostgreSQL tables."""
import logging
from abc import ABC, abstractmethod
from typing import Generic, List, Sequence, TypeVar

from .connection import ConnectionManager

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class DuplicateError(RepositoryError):
    """Duplicate entity already exists."""
    pass


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository.

    Subclasses implement row mapping while inheriting connection
    handling, error wrapping and logging.
    """

    def __init__(
        self,
        connection_manager: ConnectionManager,
        table_name: str,
    ):
        self.connection_manager = connection_manager
        self.table_name = table_name

        logger.info(
            "REPOSITORY_INITIALIZED",
            extra={"table_name": table_name}
        )

    @abstractmethod
    def _row_to_entity(self, row: tuple) -> T:
        """Convert a database row to an entity."""
        pass

    def _fetch_all(self, query: str, params: Sequence = ()) -> List[T]:
        """Run a SELECT and map every row.

        Raises:
            RepositoryError: Wrapping any driver or mapping failure
        """
        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, tuple(params))
                    rows = cur.fetchall()
        except Exception as e:
            logger.error(
                "REPOSITORY_QUERY_FAILED",
                extra={
                    "table_name": self.table_name,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            raise RepositoryError(f"Query on {self.table_name} failed: {e}") from e

        try:
            return [self._row_to_entity(row) for row in rows]
        except Exception as e:
            logger.error(
                "REPOSITORY_ROW_INVALID",
                extra={
                    "table_name": self.table_name,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            raise RepositoryError(f"Invalid row in {self.table_name}: {e}") from e

