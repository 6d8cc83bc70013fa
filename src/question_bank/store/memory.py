"""In-process content store."""

import copy
import uuid
from collections import defaultdict

from .base import Filters, StoreError, is_membership


class MemoryStore:
    """Content store kept in memory, for dry runs and tests.

    Rows are deep-copied on the way in and out so callers never share state
    with the store. Missing ids are assigned as UUID strings.
    """

    def __init__(self, tables: dict[str, list[dict]] | None = None):
        self._tables: dict[str, list[dict]] = defaultdict(list)
        self.read_only: set[str] = set()
        for table, rows in (tables or {}).items():
            self.insert(table, rows)

    def query(self, table: str, filters: Filters | None = None) -> list[dict]:
        filters = filters or {}
        return [
            copy.deepcopy(row)
            for row in self._tables.get(table, [])
            if all(self._matches(row.get(column), value) for column, value in filters.items())
        ]

    def insert(self, table: str, rows: dict | list[dict]) -> list[dict]:
        if table in self.read_only:
            raise StoreError(f"Table is read-only: {table}")

        batch = [rows] if isinstance(rows, dict) else list(rows)
        inserted = []
        for row in batch:
            stored = copy.deepcopy(row)
            stored.setdefault("id", str(uuid.uuid4()))
            inserted.append(stored)

        self._tables[table].extend(inserted)
        return copy.deepcopy(inserted)

    def rows(self, table: str) -> list[dict]:
        """All rows of a table, in insertion order."""
        return copy.deepcopy(self._tables.get(table, []))

    @staticmethod
    def _matches(actual, expected) -> bool:
        if is_membership(expected):
            return actual in expected
        return actual == expected

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
