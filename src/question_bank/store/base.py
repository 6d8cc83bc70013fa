"""Content store interface."""

from collections.abc import Collection, Mapping
from typing import Any, Protocol, runtime_checkable

Filters = Mapping[str, Any]


class StoreError(Exception):
    """Raised when a store query or insert fails."""


def is_membership(value: Any) -> bool:
    """True if a filter value means "column is one of these values"."""
    return isinstance(value, Collection) and not isinstance(value, (str, bytes, Mapping))


@runtime_checkable
class ContentStore(Protocol):
    """Relational/document store reachable through equality filters.

    A scalar filter value matches rows whose column equals it; a collection
    value matches rows whose column equals any of its members. Filters
    combine conjunctively. The store performs no joins.
    """

    def query(self, table: str, filters: Filters | None = None) -> list[dict]:
        """Return all rows of ``table`` matching ``filters``.

        Raises:
            StoreError: If the query fails
        """
        ...

    def insert(self, table: str, rows: dict | list[dict]) -> list[dict]:
        """Insert one or many rows and return them with assigned ids.

        Raises:
            StoreError: If the insert fails
        """
        ...

    def close(self) -> None:
        """Release any held connections."""
        ...
