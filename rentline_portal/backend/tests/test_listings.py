# backend/tests/test_listings.py
from __future__ import annotations

import pytest

from rentline.domain.listings import ListingFilters, available_units, search_listings


def test_only_available_units_are_listed(graph):
    ids = {r.id for r in available_units(graph)}
    assert ids == {"unit-1b", "unit-1c", "unit-2b"}


def test_filters(graph):
    page = search_listings(graph, ListingFilters(city="nairobi"))
    assert {r.id for r in page.data} == {"unit-1b", "unit-1c"}

    page = search_listings(graph, ListingFilters(min_rent=20000))
    assert {r.id for r in page.data} == {"unit-1b", "unit-2b"}

    page = search_listings(graph, ListingFilters(bedrooms=0))
    assert [r.id for r in page.data] == ["unit-1c"]

    page = search_listings(graph, ListingFilters(search="links rd"))
    assert [r.id for r in page.data] == ["unit-2b"]


def test_sorts(graph):
    low = search_listings(graph, ListingFilters(sort="price_low"))
    assert [r.id for r in low.data] == ["unit-1c", "unit-1b", "unit-2b"]
    size = search_listings(graph, ListingFilters(sort="size"))
    assert size.data[0].id == "unit-2b"


def test_pagination(graph):
    first = search_listings(graph, ListingFilters(sort="price_low"), page=1, page_size=2)
    second = search_listings(graph, ListingFilters(sort="price_low"), page=2, page_size=2)
    assert first.total == 3
    assert first.total_pages == 2
    assert [r.id for r in second.data] == ["unit-2b"]


def test_bad_sort_or_page(graph):
    with pytest.raises(ValueError):
        search_listings(graph, ListingFilters(sort="cheapest"))
    with pytest.raises(ValueError):
        search_listings(graph, page=0)
