"""City slug encoding and slug-to-group resolution."""

import re
from typing import Iterable, Optional

from signs_directory.directory.grouping import select_canonical
from signs_directory.models import CityGroup

_WHITESPACE = re.compile(r"\s+")


def encode_slug(name: str) -> str:
    """``"  Milton Keynes "`` -> ``"milton-keynes"``."""
    return _WHITESPACE.sub("-", name.strip().lower())


def resolve_slug(slug: str, ordered_groups: Iterable[CityGroup]) -> Optional[CityGroup]:
    """Return the first group whose canonical name encodes to ``slug``.

    Two canonical names may share a slug; the group ordered first (largest
    member count) wins and the other is unreachable by slug.
    """
    target = (slug or "").strip().lower()
    if not target:
        return None
    for group in ordered_groups:
        if encode_slug(select_canonical(group).canonical_form) == target:
            return group
    return None
