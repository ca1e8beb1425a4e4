"""Paged retrieval of a whole table from a store with a per-request row cap."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from signs_directory.core.query import RowFilter, RowStore, SortKey, StoreError, with_stable_order
from signs_directory.directory.errors import FetchFailed

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


class PagedFetcher:
    """Fetch every row matching a query, one capped range request at a time.

    A count request is issued first; range requests then walk ``[offset,
    offset + batch_size - 1]`` until the count is reached or the store returns
    a short or empty batch. Every sort ends with the stable key so two calls
    against unchanged data see the same order.
    """

    def __init__(self, store: RowStore, table: str, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._store = store
        self._table = table
        self._batch_size = batch_size

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def fetch_all(
        self,
        projection: Sequence[str],
        row_filter: Optional[RowFilter] = None,
        sort: Sequence[SortKey] = (),
    ) -> List[Dict[str, Any]]:
        try:
            total = self._store.count(self._table, row_filter)
        except StoreError as exc:
            logger.error("Error getting total count for %s: %s", self._table, exc)
            raise FetchFailed(self._table, None, exc) from exc

        logger.debug("Total rows in %s matching %s: %s", self._table, row_filter, total)
        order = with_stable_order(sort)
        rows: List[Dict[str, Any]] = []
        offset = 0

        while offset < total:
            end = min(offset + self._batch_size - 1, total - 1)
            try:
                batch = self._store.fetch_range(self._table, projection, row_filter, order, offset, end)
            except StoreError as exc:
                logger.error("Error fetching %s batch (%s-%s): %s", self._table, offset, end, exc)
                raise FetchFailed(self._table, (offset, end), exc) from exc

            if not batch:
                break
            rows.extend(batch)
            logger.debug("Fetched batch %s-%s (%s rows)", offset, end, len(batch))

            offset += self._batch_size
            if len(batch) < self._batch_size:
                break

        if len(rows) != total:
            logger.info("Fetched %s of %s counted rows from %s", len(rows), total, self._table)
        return rows

    def fetch_first(self, projection: Sequence[str], row_filter: RowFilter) -> Optional[Dict[str, Any]]:
        """Single-row lookup without a count request."""
        try:
            rows = self._store.fetch_range(self._table, projection, row_filter, with_stable_order(()), 0, 0)
        except StoreError as exc:
            logger.error("Error fetching %s row for %s: %s", self._table, row_filter, exc)
            raise FetchFailed(self._table, (0, 0), exc) from exc
        return rows[0] if rows else None
