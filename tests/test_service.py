from datetime import datetime, timezone

import pytest

from signs_directory.core.query import RowFilter
from signs_directory.directory.errors import BusinessNotFound, EmptyResult, FetchFailed, GroupNotFound
from signs_directory.directory.service import DirectoryService, detail_filter


def _service(store, batch_size=1000):
    return DirectoryService(store, table="signage_businesses", batch_size=batch_size)


def test_fetch_all_grouped_counts_every_record(fake_store, rows_for):
    rows = rows_for("Leeds", " leeds ", "LEEDS", None, "York", ratings=[4, 5, 5, 3, None])

    directory = _service(fake_store(rows)).fetch_all_grouped()

    assert directory.total_records == 5
    assert [group.normalized_key for group in directory.groups] == ["leeds", "york"]
    assert sum(group.member_count for group in directory.groups) + 1 == directory.total_records


def test_home_listing(fake_store, rows_for):
    rows = rows_for("Leeds", " leeds ", "LEEDS", "York", "york", "Bath", ratings=[4, 5, 5, None, 4, 3])

    listing = _service(fake_store(rows)).home_listing(limit=2)

    assert listing.total_businesses == 6
    assert listing.total_cities == 3
    assert [city.name for city in listing.cities] == ["Leeds", "York"]
    leeds = listing.cities[0]
    assert leeds.count == 3
    assert leeds.slug == "leeds"
    assert leeds.average_rating == pytest.approx(14 / 3)
    assert listing.cities[1].average_rating == 2.0
    # overall average only uses rated businesses
    assert listing.overall_average_rating == pytest.approx(21 / 5)


def test_home_and_city_pages_agree(fake_store, rows_for):
    cities = ["Leeds", " leeds", "Milton Keynes", "milton keynes ", "Milton Keynes", "York", "Bath"] * 300
    store = fake_store(rows_for(*cities))
    service = _service(store, batch_size=1000)

    home = service.home_listing(limit=24)

    for city in home.cities:
        detail = service.city_listing(city.slug)
        assert detail.city.name == city.name
        assert detail.expected_count == city.count
        assert len(detail.businesses) == city.count
        assert detail.consistent is True


def test_city_listing_fetches_all_variants(fake_store, rows_for):
    rows = rows_for("Leeds", " leeds ", "LEEDS", "York", ratings=[3, None, 5, 4])
    store = fake_store(rows)

    listing = _service(store).city_listing("leeds")

    assert listing.city.name == "Leeds"
    assert listing.city.variants == ("Leeds", " leeds ", "LEEDS")
    assert [business.rating for business in listing.businesses] == [5.0, 3.0, None]
    assert store.count_calls[-1] == RowFilter.any_of("address_info_city", ["Leeds", " leeds ", "LEEDS"])


def test_city_listing_unknown_slug(fake_store, rows_for):
    with pytest.raises(GroupNotFound) as excinfo:
        _service(fake_store(rows_for("Leeds"))).city_listing("atlantis")
    assert excinfo.value.slug == "atlantis"


def test_detail_records_are_refiltered_locally(fake_store, rows_for):
    leaked = {"id": 99, "address_info_city": "Leeds Bradford", "rating": 5, "business_name": "Elsewhere"}
    store = fake_store(rows_for("Leeds", "Leeds"), leaky_rows=[leaked])
    service = _service(store)

    group = service.resolve_group_by_slug("leeds")
    records = service.fetch_detail_records(group)

    assert [record.id for record in records] == [1, 2]


def test_empty_detail_result_is_reported(fake_store, rows_for, caplog):
    store = fake_store(rows_for("Leeds", "Leeds"))
    store._select = lambda row_filter: list(store.rows) if row_filter is None else []
    service = _service(store)

    with caplog.at_level("WARNING"):
        listing = service.city_listing("leeds")

    assert listing.businesses == []
    assert listing.consistent is False
    assert listing.expected_count == 2
    assert "detail fetch returned none" in " ".join(caplog.messages)

    with pytest.raises(EmptyResult):
        service.fetch_detail_records(service.resolve_group_by_slug("leeds"), strict=True)


def test_fetch_failure_propagates(fake_store, rows_for):
    store = fake_store(rows_for(*(["Leeds"] * 5)), fail_at=2)
    with pytest.raises(FetchFailed):
        _service(store, batch_size=2).home_listing()


def test_detail_filter_shapes(fake_store, rows_for):
    service = _service(fake_store(rows_for("Leeds", "York", "york")))
    groups = {group.normalized_key: group for group in service.fetch_all_grouped().groups}

    assert detail_filter(groups["leeds"]) == RowFilter.eq("address_info_city", "Leeds")
    assert detail_filter(groups["york"]) == RowFilter.any_of("address_info_city", ["York", "york"])

    groups["leeds"].variant_counts.clear()
    assert detail_filter(groups["leeds"]) == RowFilter.contains("address_info_city", "leeds")


def test_sitemap_entries(fake_store):
    rows = [
        {"id": 1, "address_info_city": "Leeds", "slug": "acme-signs", "updated_at": "2025-03-01T10:00:00Z"},
        {"id": 2, "address_info_city": "leeds", "slug": None, "updated_at": "2025-05-01T10:00:00+00:00"},
        {"id": 3, "address_info_city": "Milton Keynes", "slug": "mk-graphics", "updated_at": None},
        {"id": 4, "address_info_city": "milton-keynes", "slug": None, "updated_at": None},
        {"id": 5, "address_info_city": None, "slug": "nowhere-signs", "updated_at": None},
    ]
    now = datetime(2025, 6, 1, tzinfo=timezone.utc)

    entries = _service(fake_store(rows)).sitemap_entries("https://example.test/", now=now)
    by_url = {entry.url: entry for entry in entries}

    assert by_url["https://example.test"].priority == 1.0
    assert by_url["https://example.test/calculator"].change_frequency == "weekly"
    leeds = by_url["https://example.test/leeds"]
    assert leeds.priority == 0.9
    assert leeds.last_modified == datetime(2025, 5, 1, 10, tzinfo=timezone.utc)
    assert by_url["https://example.test/milton-keynes"].last_modified == now
    city_urls = [entry.url for entry in entries if entry.priority == 0.9]
    assert city_urls == ["https://example.test/leeds", "https://example.test/milton-keynes"]
    assert by_url["https://example.test/business/nowhere-signs"].change_frequency == "monthly"
    assert "https://example.test/business/acme-signs" in by_url


def test_get_business(fake_store):
    store = fake_store([{"id": 7, "slug": "acme", "business_name": " Acme Signs ", "rating": "4.5", "url": "https://acme.test"}])
    service = _service(store)

    business = service.get_business("acme")

    assert business.name == "Acme Signs"
    assert business.rating == 4.5
    assert business.website == "https://acme.test"
    with pytest.raises(BusinessNotFound):
        service.get_business("missing")


def test_partial_detail_result_is_not_consistent(fake_store, rows_for, caplog):
    store = fake_store(rows_for("Leeds", "Leeds", "Leeds"))
    store._select = lambda row_filter: list(store.rows) if row_filter is None else store.rows[:2]

    with caplog.at_level("WARNING"):
        listing = _service(store).city_listing("leeds")

    assert len(listing.businesses) == 2
    assert listing.expected_count == 3
    assert listing.consistent is False
    assert "grouped 3" in " ".join(caplog.messages)
