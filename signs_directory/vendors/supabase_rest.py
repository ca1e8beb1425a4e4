"""Client utilities for a Supabase (PostgREST) table."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from signs_directory.core.query import RowFilter, SortKey, StoreError

logger = logging.getLogger(__name__)
_SESSION = requests.Session()


class StoreRequestError(StoreError):
    """Raised when PostgREST returns a non-successful response."""


def configure_session(max_retries: int) -> requests.Session:
    """Mount retrying adapters on the shared session; ``0`` keeps requests fail-fast."""
    retries = Retry(
        total=max_retries,
        backoff_factor=1,
        status_forcelist=(500, 502, 503, 504),
        allowed_methods=("GET", "HEAD"),
    )
    _SESSION.mount("http://", HTTPAdapter(max_retries=retries))
    _SESSION.mount("https://", HTTPAdapter(max_retries=retries))
    return _SESSION


def _quote_in_value(value: Any) -> str:
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def encode_filter(row_filter: RowFilter) -> Tuple[str, str]:
    if row_filter.op == "eq":
        return row_filter.column, f"eq.{row_filter.value}"
    if row_filter.op == "in":
        joined = ",".join(_quote_in_value(value) for value in row_filter.value)
        return row_filter.column, f"in.({joined})"
    return row_filter.column, f"ilike.*{row_filter.value}*"


def encode_order(sort: Sequence[SortKey]) -> str:
    parts = []
    for key in sort:
        direction = "desc" if key.descending else "asc"
        nulls = "nullslast" if key.nulls_last else "nullsfirst"
        parts.append(f"{key.column}.{direction}.{nulls}")
    return ",".join(parts)


def parse_content_range(header: Optional[str]) -> int:
    """Extract the total from a ``Content-Range`` header such as ``0-999/2500`` or ``*/0``."""
    if not header or "/" not in header:
        raise StoreRequestError(f"Missing exact count in Content-Range header: {header!r}")
    total = header.rsplit("/", 1)[1].strip()
    if not total.isdigit():
        raise StoreRequestError(f"Content-Range header has no exact total: {header!r}")
    return int(total)


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        return str(payload.get("message") or payload)
    return str(payload)


class SupabaseRowStore:
    """Row store speaking PostgREST, the protocol behind Supabase tables."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0) -> None:
        if not base_url:
            raise ValueError("SUPABASE_URL is required for the Supabase row store")
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout

    def _url(self, table: str) -> str:
        return f"{self._base_url}/rest/v1/{table}"

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }
        headers.update(extra)
        return headers

    def count(self, table: str, row_filter: Optional[RowFilter] = None) -> int:
        params: List[Tuple[str, str]] = [("select", "*")]
        if row_filter is not None:
            params.append(encode_filter(row_filter))
        try:
            response = _SESSION.head(
                self._url(table),
                params=params,
                headers=self._headers(Prefer="count=exact"),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise StoreRequestError(f"count request for {table} failed: {exc}") from exc
        if response.status_code >= 400:
            logger.error("count failed: table=%s status=%s", table, response.status_code)
            raise StoreRequestError(f"count request for {table} returned {response.status_code}")
        return parse_content_range(response.headers.get("Content-Range"))

    def fetch_range(
        self,
        table: str,
        projection: Sequence[str],
        row_filter: Optional[RowFilter],
        sort: Sequence[SortKey],
        start: int,
        end: int,
    ) -> List[Dict[str, Any]]:
        if start < 0 or end < start:
            raise ValueError(f"Invalid range {start}-{end}")
        params: List[Tuple[str, str]] = [("select", ",".join(projection) or "*")]
        if row_filter is not None:
            params.append(encode_filter(row_filter))
        if sort:
            params.append(("order", encode_order(sort)))
        params.extend([("offset", str(start)), ("limit", str(end - start + 1))])
        try:
            response = _SESSION.get(self._url(table), params=params, headers=self._headers(), timeout=self._timeout)
        except requests.RequestException as exc:
            raise StoreRequestError(f"range request {start}-{end} for {table} failed: {exc}") from exc
        if response.status_code >= 400:
            message = _error_message(response)
            logger.error("fetch_range failed: table=%s range=%s-%s error_message=%s", table, start, end, message)
            raise StoreRequestError(message)
        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("fetch_range got a non-JSON body: table=%s range=%s-%s", table, start, end)
            raise StoreRequestError(f"range request {start}-{end} for {table} returned a non-JSON body") from exc
        if not isinstance(payload, list):
            raise StoreRequestError(f"Expected a JSON array from {table}, got {type(payload).__name__}")
        return payload
