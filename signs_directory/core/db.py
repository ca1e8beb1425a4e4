"""Postgres-backed row store for the directory."""

import logging
import re
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence, Tuple

import psycopg2
from psycopg2 import extras, pool

from signs_directory.core.config import get_settings
from signs_directory.core.query import RowFilter, SortKey, StoreError

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise StoreError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


def quote_ident(name: str) -> str:
    if not _IDENTIFIER.match(name or ""):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return f'"{name}"'


def _where_clause(row_filter: Optional[RowFilter]) -> Tuple[str, Dict[str, Any]]:
    if row_filter is None:
        return "", {}
    column = quote_ident(row_filter.column)
    if row_filter.op == "eq":
        return f" WHERE {column} = %(filter_value)s", {"filter_value": row_filter.value}
    if row_filter.op == "in":
        return f" WHERE {column} = ANY(%(filter_value)s)", {"filter_value": list(row_filter.value)}
    return f" WHERE {column} ILIKE %(filter_value)s", {"filter_value": f"%{row_filter.value}%"}


def _order_clause(sort: Sequence[SortKey]) -> str:
    if not sort:
        return ""
    parts = []
    for key in sort:
        direction = "DESC" if key.descending else "ASC"
        nulls = "NULLS LAST" if key.nulls_last else "NULLS FIRST"
        parts.append(f"{quote_ident(key.column)} {direction} {nulls}")
    return " ORDER BY " + ", ".join(parts)


def build_count_query(table: str, row_filter: Optional[RowFilter]) -> Tuple[str, Dict[str, Any]]:
    where, params = _where_clause(row_filter)
    return f"SELECT COUNT(*) AS total FROM {quote_ident(table)}{where}", params


def build_range_query(
    table: str,
    projection: Sequence[str],
    row_filter: Optional[RowFilter],
    sort: Sequence[SortKey],
    start: int,
    end: int,
) -> Tuple[str, Dict[str, Any]]:
    if start < 0 or end < start:
        raise ValueError(f"Invalid range {start}-{end}")
    columns = ", ".join(quote_ident(column) for column in projection) if projection else "*"
    where, params = _where_clause(row_filter)
    sql = (
        f"SELECT {columns} FROM {quote_ident(table)}{where}{_order_clause(sort)}"
        " OFFSET %(offset)s LIMIT %(limit)s"
    )
    params.update({"offset": start, "limit": end - start + 1})
    return sql, params


class PostgresRowStore:
    """Row store reading straight from the Postgres table via the shared pool."""

    def count(self, table: str, row_filter: Optional[RowFilter] = None) -> int:
        sql, params = build_count_query(table, row_filter)
        rows = self._execute(sql, params)
        total = rows[0]["total"] if rows else 0
        return int(total or 0)

    def fetch_range(
        self,
        table: str,
        projection: Sequence[str],
        row_filter: Optional[RowFilter],
        sort: Sequence[SortKey],
        start: int,
        end: int,
    ) -> List[Dict[str, Any]]:
        sql, params = build_range_query(table, projection, row_filter, sort, start, end)
        return self._execute(sql, params)

    def _execute(self, sql: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            with get_connection() as conn:
                try:
                    with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                        cur.execute(sql, params)
                        rows = cur.fetchall()
                finally:
                    # read-only; the connection goes back to the pool outside any transaction
                    conn.rollback()
        except psycopg2.Error as exc:
            logger.error("Postgres query failed: %s", exc)
            raise StoreError(str(exc)) from exc
        return [dict(row) for row in rows]
