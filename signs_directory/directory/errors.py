"""Error taxonomy for the directory engine."""

from typing import Optional, Sequence, Tuple


class DirectoryError(RuntimeError):
    """Base class for directory failures and outcomes."""


class FetchFailed(DirectoryError):
    """A count or range request failed; no partial directory may be served."""

    def __init__(self, table: str, offset_range: Optional[Tuple[int, int]], cause: Exception) -> None:
        self.table = table
        self.offset_range = offset_range
        self.cause = cause
        if offset_range is None:
            where = "count request"
        else:
            where = f"range {offset_range[0]}-{offset_range[1]}"
        super().__init__(f"Fetching {table} failed at {where}: {cause}")


class GroupNotFound(DirectoryError):
    """The inbound slug matches no city group."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f"No city matches slug {slug!r}")


class BusinessNotFound(DirectoryError):
    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f"No business matches slug {slug!r}")


class EmptyResult(DirectoryError):
    """A resolved city returned no records on the filtered detail pass."""

    def __init__(self, normalized_key: str, expected_count: int, variants: Sequence[str]) -> None:
        self.normalized_key = normalized_key
        self.expected_count = expected_count
        self.variants = tuple(variants)
        super().__init__(
            f"Expected {expected_count} businesses for {normalized_key!r} but the detail fetch returned none "
            f"(variants={list(self.variants)})"
        )
