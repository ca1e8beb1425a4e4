"""Query primitives shared by the row store adapters and the directory engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

STABLE_KEY = "id"

_FILTER_OPS = {"eq", "in", "ilike"}


class StoreError(RuntimeError):
    """Raised by a row store when a count or range request fails."""


@dataclass(frozen=True)
class RowFilter:
    """A single-column predicate understood by every store backend."""

    column: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in _FILTER_OPS:
            raise ValueError(f"Unsupported filter operator: {self.op}")

    @classmethod
    def eq(cls, column: str, value: Any) -> "RowFilter":
        return cls(column=column, op="eq", value=value)

    @classmethod
    def any_of(cls, column: str, values: Sequence[Any]) -> "RowFilter":
        return cls(column=column, op="in", value=tuple(values))

    @classmethod
    def contains(cls, column: str, text: str) -> "RowFilter":
        """Case-insensitive substring match."""
        return cls(column=column, op="ilike", value=text)


@dataclass(frozen=True)
class SortKey:
    column: str
    descending: bool = False
    nulls_last: bool = True


class RowStore(Protocol):
    """Contract expected from the storage collaborator.

    Implementations must return rows in a repeatable order for a given sort;
    callers append the stable key to every sort to guarantee this.
    """

    def count(self, table: str, row_filter: Optional[RowFilter] = None) -> int:
        ...

    def fetch_range(
        self,
        table: str,
        projection: Sequence[str],
        row_filter: Optional[RowFilter],
        sort: Sequence[SortKey],
        start: int,
        end: int,
    ) -> List[Dict[str, Any]]:
        ...


def with_stable_order(sort: Sequence[SortKey]) -> Tuple[SortKey, ...]:
    """Return ``sort`` with the stable key appended when it is not already present."""
    keys = tuple(sort)
    if any(key.column == STABLE_KEY for key in keys):
        return keys
    return keys + (SortKey(STABLE_KEY),)
