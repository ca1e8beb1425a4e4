"""Directory service: the one fetch/group/canonicalize pipeline behind every view.

The home listing, the city listing and the sitemap all go through
``fetch_all_grouped`` so a city's count and name cannot drift between pages.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from signs_directory.core.query import RowFilter, RowStore, SortKey
from signs_directory.directory.errors import BusinessNotFound, EmptyResult, GroupNotFound
from signs_directory.directory.fetcher import DEFAULT_BATCH_SIZE, PagedFetcher
from signs_directory.directory.grouping import aggregate, average_rating, normalize_city, order_groups, select_canonical
from signs_directory.directory.sitemap import STATIC_PAGES
from signs_directory.directory.slugs import encode_slug, resolve_slug
from signs_directory.etl.transform import to_business
from signs_directory.models import (
    Business,
    CityGroup,
    CityListing,
    CitySummary,
    GroupedDirectory,
    HomeListing,
    SitemapEntry,
)

logger = logging.getLogger(__name__)

CITY_COLUMN = "address_info_city"

LISTING_COLUMNS = ("id", CITY_COLUMN, "rating")
SITEMAP_COLUMNS = ("id", CITY_COLUMN, "rating", "slug", "updated_at")
DETAIL_COLUMNS = ("id", "place_id", "business_name", "slug", "rating", "votes_count", "about", CITY_COLUMN)
BUSINESS_COLUMNS = (
    "id",
    "business_name",
    "slug",
    "category",
    "description",
    "phone",
    "url",
    "address",
    CITY_COLUMN,
    "rating",
    "votes_count",
    "about",
    "place_id",
    "logo",
    "main_image",
)

DETAIL_SORT = (SortKey("rating", descending=True, nulls_last=True),)


def summarize(group: CityGroup) -> CitySummary:
    canonical = select_canonical(group)
    return CitySummary(
        name=canonical.display_name,
        slug=encode_slug(canonical.canonical_form),
        count=group.member_count,
        average_rating=average_rating(group),
        variants=canonical.variants,
        normalized_key=group.normalized_key,
    )


def detail_filter(group: CityGroup) -> RowFilter:
    variants = select_canonical(group).variants
    if len(variants) == 1:
        return RowFilter.eq(CITY_COLUMN, variants[0])
    if len(variants) > 1:
        return RowFilter.any_of(CITY_COLUMN, variants)
    return RowFilter.contains(CITY_COLUMN, group.normalized_key)


class DirectoryService:
    def __init__(self, store: RowStore, table: str = "signage_businesses", batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self._fetcher = PagedFetcher(store, table, batch_size=batch_size)

    def fetch_all_grouped(self, projection: Sequence[str] = LISTING_COLUMNS) -> GroupedDirectory:
        rows = self._fetcher.fetch_all(projection)
        records = [to_business(row) for row in rows]
        groups = order_groups(aggregate(records))
        logger.info("Grouped %s businesses into %s cities", len(records), len(groups))
        return GroupedDirectory(groups=groups, total_records=len(records), records=records)

    def resolve_group_by_slug(self, slug: str, projection: Sequence[str] = LISTING_COLUMNS) -> CityGroup:
        group = resolve_slug(slug, self.fetch_all_grouped(projection).groups)
        if group is None:
            raise GroupNotFound(slug)
        return group

    def fetch_detail_records(self, group: CityGroup, strict: bool = False) -> List[Business]:
        """Fetch the businesses of a resolved city, matching every observed spelling.

        Rows are re-checked against the group key locally since the store's text
        comparison may not agree with ``normalize_city``.
        """
        rows = self._fetcher.fetch_all(DETAIL_COLUMNS, detail_filter(group), DETAIL_SORT)
        records = [to_business(row) for row in rows]
        matched = [record for record in records if normalize_city(record.city) == group.normalized_key]
        if len(matched) != len(records):
            logger.debug("Dropped %s rows not matching %s", len(records) - len(matched), group.normalized_key)

        if not matched:
            error = EmptyResult(group.normalized_key, group.member_count, group.variant_counts)
            if strict:
                raise error
            logger.warning("%s", error)
        return matched

    def home_listing(self, limit: int = 24) -> HomeListing:
        directory = self.fetch_all_grouped(LISTING_COLUMNS)
        rated = [record.rating for record in directory.records if record.rating is not None]
        overall = sum(rated) / len(rated) if rated else 0.0
        return HomeListing(
            cities=[summarize(group) for group in directory.groups[:limit]],
            total_businesses=directory.total_records,
            total_cities=len(directory.groups),
            overall_average_rating=overall,
        )

    def city_listing(self, slug: str) -> CityListing:
        group = self.resolve_group_by_slug(slug)
        summary = summarize(group)
        businesses = self.fetch_detail_records(group)
        consistent = len(businesses) == group.member_count
        if businesses and not consistent:
            logger.warning(
                "City %s listed %s businesses on the detail pass but grouped %s",
                group.normalized_key,
                len(businesses),
                group.member_count,
            )
        return CityListing(city=summary, businesses=businesses, consistent=consistent)

    def sitemap_entries(self, base_url: str, now: Optional[datetime] = None) -> List[SitemapEntry]:
        now = now or datetime.now(timezone.utc)
        base_url = base_url.rstrip("/")
        entries = [
            SitemapEntry(url=f"{base_url}{path}", last_modified=now, change_frequency=freq, priority=priority)
            for path, freq, priority in STATIC_PAGES
        ]

        directory = self.fetch_all_grouped(SITEMAP_COLUMNS)
        seen_slugs = {}
        for group in directory.groups:
            slug = encode_slug(select_canonical(group).canonical_form)
            if slug in seen_slugs:
                logger.warning(
                    "City %s shares slug %s with %s and is unreachable by URL",
                    group.normalized_key,
                    slug,
                    seen_slugs[slug],
                )
                continue
            seen_slugs[slug] = group.normalized_key
            entries.append(
                SitemapEntry(
                    url=f"{base_url}/{slug}",
                    last_modified=group.last_updated or now,
                    change_frequency="weekly",
                    priority=0.9,
                )
            )

        for record in directory.records:
            if not record.slug:
                continue
            entries.append(
                SitemapEntry(
                    url=f"{base_url}/business/{record.slug}",
                    last_modified=record.updated_at or now,
                    change_frequency="monthly",
                    priority=0.8,
                )
            )
        return entries

    def get_business(self, slug: str) -> Business:
        row = self._fetcher.fetch_first(BUSINESS_COLUMNS, RowFilter.eq("slug", slug))
        if row is None:
            raise BusinessNotFound(slug)
        return to_business(row)
