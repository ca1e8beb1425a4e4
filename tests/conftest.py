import sys
from pathlib import Path

import pytest

# Ensure the `signs_directory` package is importable when running pytest from the repo root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from signs_directory.core.query import StoreError  # noqa: E402


class FakeRowStore:
    """In-memory row store honouring the count/fetch_range contract."""

    def __init__(self, rows, fail_at=None, fail_count=False, leaky_rows=None):
        self.rows = [dict(row) for row in rows]
        self.fail_at = fail_at
        self.fail_count = fail_count
        self.leaky_rows = [dict(row) for row in leaky_rows or []]
        self.count_calls = []
        self.range_calls = []
        self.sorts = []

    def _matches(self, row, row_filter):
        if row_filter is None:
            return True
        value = row.get(row_filter.column)
        if row_filter.op == "eq":
            return value == row_filter.value
        if row_filter.op == "in":
            return value in row_filter.value
        return value is not None and str(row_filter.value).lower() in str(value).lower()

    def _select(self, row_filter):
        selected = [row for row in self.rows if self._matches(row, row_filter)]
        if row_filter is not None:
            selected.extend(self.leaky_rows)
        return selected

    def count(self, table, row_filter=None):
        self.count_calls.append(row_filter)
        if self.fail_count:
            raise StoreError("count exploded")
        return len(self._select(row_filter))

    def fetch_range(self, table, projection, row_filter, sort, start, end):
        self.range_calls.append((start, end))
        self.sorts.append(tuple(sort))
        if self.fail_at is not None and start == self.fail_at:
            raise StoreError("range exploded")
        rows = self._select(row_filter)
        for key in reversed(tuple(sort)):
            present = [row for row in rows if row.get(key.column) is not None]
            missing = [row for row in rows if row.get(key.column) is None]
            present.sort(key=lambda row: row[key.column], reverse=key.descending)
            rows = present + missing if key.nulls_last else missing + present
        window = rows[start : end + 1]
        if projection:
            return [{column: row.get(column) for column in projection} for row in window]
        return [dict(row) for row in window]


def make_rows(*cities, ratings=None):
    ratings = ratings or [None] * len(cities)
    return [
        {"id": index + 1, "address_info_city": city, "rating": rating, "business_name": f"Shop {index + 1}"}
        for index, (city, rating) in enumerate(zip(cities, ratings))
    ]


@pytest.fixture
def fake_store():
    return FakeRowStore


@pytest.fixture
def rows_for():
    return make_rows
