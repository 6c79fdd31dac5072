"""
Result cursor over a materialized query result.
"""

from collections.abc import Iterator
from typing import Any

import structlog

from ..errors import InterfaceError
from ..remote.base import QueryMetadata, QueryResult

logger = structlog.get_logger(__name__)


class ResultCursor:
    """
    Forward-only cursor over the rows of a completed query.

    ``description`` follows DB-API 2.0: one 7-item sequence per column with
    the name, type name and nullability filled in.
    """

    arraysize = 1

    def __init__(self, result: QueryResult, max_rows: int | None = None):
        self._result = result
        self._rows = result.data if not max_rows else result.data[:max_rows]
        self._position = 0
        self._closed = False

    @property
    def job_id(self) -> str | None:
        return self._result.metadata.job_id

    @property
    def metadata(self) -> QueryMetadata:
        return self._result.metadata

    @property
    def description(self) -> list[tuple[Any, ...]]:
        return [
            (column.name, column.type_name, None, None, None, None, column.is_nullable)
            for column in self._result.columns
        ]

    @property
    def rowcount(self) -> int:
        if self._result.metadata.affected_rows is not None:
            return self._result.metadata.affected_rows
        return len(self._rows)

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise InterfaceError("Cursor is closed")

    def fetchone(self) -> tuple[Any, ...] | None:
        self._check_open()
        if self._position >= len(self._rows):
            return None
        row = self._rows[self._position]
        self._position += 1
        return row

    def fetchmany(self, size: int | None = None) -> list[tuple[Any, ...]]:
        self._check_open()
        size = self.arraysize if size is None else size
        rows = self._rows[self._position : self._position + size]
        self._position += len(rows)
        return list(rows)

    def fetchall(self) -> list[tuple[Any, ...]]:
        self._check_open()
        rows = self._rows[self._position :]
        self._position = len(self._rows)
        return list(rows)

    def __iter__(self) -> Iterator[tuple[Any, ...]]:
        while True:
            row = self.fetchone()
            if row is None:
                return
            yield row

    def close(self) -> None:
        """Close the cursor; further fetches raise InterfaceError."""
        if self._closed:
            return
        self._closed = True
        self._rows = []
        logger.debug("result_cursor_closed", job_id=self.job_id)
