"""City grouping: key normalization, aggregation and canonical name selection."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional

from signs_directory.models import Business, CanonicalCity, CityGroup

logger = logging.getLogger(__name__)


def normalize_city(label: Optional[str]) -> str:
    """Comparison key for a free-text city label: trimmed and lower-cased.

    Only case and surrounding whitespace are folded; "St Albans" and
    "St. Albans" stay distinct.
    """
    if not label:
        return ""
    return label.strip().lower()


def aggregate(records: Iterable[Business]) -> Dict[str, CityGroup]:
    """Fold records into groups keyed by normalized city, in first-seen order.

    Records without a usable city label belong to no group.
    """
    groups: Dict[str, CityGroup] = {}
    for record in records:
        key = normalize_city(record.city)
        if not key:
            continue

        group = groups.get(key)
        if group is None:
            group = CityGroup(normalized_key=key)
            groups[key] = group

        group.variant_counts[record.city] = group.variant_counts.get(record.city, 0) + 1
        group.member_count += 1
        group.rating_sum += record.rating or 0
        if record.updated_at is not None and (group.last_updated is None or record.updated_at > group.last_updated):
            group.last_updated = record.updated_at

    for group in groups.values():
        if len(group.variant_counts) > 1:
            logger.debug("City %s has spelling variations: %s", group.normalized_key, group.variant_counts)
    return groups


def order_groups(groups: Mapping[str, CityGroup]) -> List[CityGroup]:
    # sorted() is stable, so equal counts keep first-seen order
    return sorted(groups.values(), key=lambda group: group.member_count, reverse=True)


def select_canonical(group: CityGroup) -> CanonicalCity:
    """Pick the most frequent raw spelling; the first one seen wins a tie."""
    canonical = group.normalized_key
    best = 0
    for variant, count in group.variant_counts.items():
        if count > best:
            best = count
            canonical = variant
    return CanonicalCity(canonical_form=canonical, variants=tuple(group.variant_counts))


def average_rating(group: CityGroup) -> float:
    # unrated members count towards the denominator
    if group.member_count == 0:
        return 0.0
    return group.rating_sum / group.member_count
