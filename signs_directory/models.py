"""Core data models shared by the directory engine and its views."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Business:
    """Snapshot of a sign-shop row as fetched from the store."""

    id: Any
    name: Optional[str] = None
    city: Optional[str] = None
    rating: Optional[float] = None
    slug: Optional[str] = None
    place_id: Optional[str] = None
    votes_count: Optional[int] = None
    about: Optional[str] = None
    category: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    updated_at: Optional[datetime] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass
class CityGroup:
    """Aggregation bucket for one normalized city key."""

    normalized_key: str
    variant_counts: Dict[str, int] = field(default_factory=dict)
    member_count: int = 0
    rating_sum: float = 0.0
    last_updated: Optional[datetime] = None


@dataclass(frozen=True)
class CanonicalCity:
    canonical_form: str
    variants: Tuple[str, ...]

    @property
    def display_name(self) -> str:
        return self.canonical_form.strip()


@dataclass(frozen=True)
class CitySummary:
    name: str
    slug: str
    count: int
    average_rating: float
    variants: Tuple[str, ...]
    normalized_key: str


@dataclass
class GroupedDirectory:
    groups: List[CityGroup]
    total_records: int
    records: List[Business] = field(default_factory=list, repr=False)


@dataclass
class HomeListing:
    cities: List[CitySummary]
    total_businesses: int
    total_cities: int
    overall_average_rating: float


@dataclass
class CityListing:
    city: CitySummary
    businesses: List[Business]
    consistent: bool = True

    @property
    def expected_count(self) -> int:
        return self.city.count


@dataclass(frozen=True)
class SitemapEntry:
    url: str
    last_modified: datetime
    change_frequency: str
    priority: float
