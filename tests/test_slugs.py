from signs_directory.directory import grouping, slugs
from signs_directory.models import Business


def _ordered(*cities):
    records = [Business(id=i, city=city) for i, city in enumerate(cities)]
    return grouping.order_groups(grouping.aggregate(records))


def test_encode_slug():
    assert slugs.encode_slug("Leeds") == "leeds"
    assert slugs.encode_slug("  Milton   Keynes ") == "milton-keynes"
    assert slugs.encode_slug("Stoke-on-Trent") == "stoke-on-trent"
    assert slugs.encode_slug("St. Albans") == "st.-albans"


def test_resolve_round_trips_every_group():
    groups = _ordered("Leeds", "leeds", "Milton Keynes", "York", " York", "Bath")
    for group in groups:
        slug = slugs.encode_slug(grouping.select_canonical(group).canonical_form)
        assert slugs.resolve_slug(slug, groups) is group


def test_resolve_normalizes_inbound_slug():
    groups = _ordered("Milton Keynes")
    assert slugs.resolve_slug("  MILTON-KEYNES ", groups) is groups[0]


def test_resolve_returns_none_for_unknown_or_empty_slug():
    groups = _ordered("Leeds")
    assert slugs.resolve_slug("york", groups) is None
    assert slugs.resolve_slug("", groups) is None


def test_slug_collision_resolves_to_larger_group():
    # "milton keynes" and "milton-keynes" are distinct keys but share a slug
    groups = _ordered("milton-keynes", "Milton Keynes", "Milton Keynes")

    resolved = slugs.resolve_slug("milton-keynes", groups)

    assert resolved.normalized_key == "milton keynes"
    assert resolved.member_count == 2
