# backend/rentline/domain/listings.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from ..schemas import Listing, Page
from .graph import EntityGraph

SORTS = ("newest", "price_low", "price_high", "size")


@dataclass(frozen=True)
class ListingFilters:
    city: Optional[str] = None
    county: Optional[str] = None
    min_rent: Optional[float] = None
    max_rent: Optional[float] = None
    bedrooms: Optional[int] = None
    unit_type: Optional[str] = None
    search: Optional[str] = None
    sort: str = "newest"


def available_units(g: EntityGraph) -> list[Listing]:
    """Available units joined with their property; units without a property are not listed."""
    out: list[Listing] = []
    for u in g.units:
        if u.status != "available":
            continue
        prop = g.property(u.property_id)
        if prop is None:
            continue
        out.append(Listing(**dict(u), property=prop))
    return out


def _matches(row: Listing, f: ListingFilters) -> bool:
    if f.city and row.property.city.lower() != f.city.strip().lower():
        return False
    if f.county and row.property.county.lower() != f.county.strip().lower():
        return False
    # falsy bounds are ignored, as the listings screen does
    if f.min_rent and row.rent_amount < f.min_rent:
        return False
    if f.max_rent and row.rent_amount > f.max_rent:
        return False
    if f.bedrooms is not None and row.bedrooms != f.bedrooms:
        return False
    if f.unit_type and row.type != f.unit_type:
        return False
    if f.search:
        needle = f.search.strip().lower()
        hay = " ".join([row.property.name, row.property.address, row.property.city, row.unit_number]).lower()
        if needle and needle not in hay:
            return False
    return True


def _sorted(rows: list[Listing], sort: str) -> list[Listing]:
    if sort == "price_low":
        return sorted(rows, key=lambda r: r.rent_amount)
    if sort == "price_high":
        return sorted(rows, key=lambda r: r.rent_amount, reverse=True)
    if sort == "size":
        return sorted(rows, key=lambda r: r.square_meters, reverse=True)
    if sort == "newest":
        return sorted(rows, key=lambda r: r.created_at, reverse=True)
    raise ValueError(f"sort must be one of {SORTS}, got {sort!r}")


def search_listings(
    g: EntityGraph,
    filters: ListingFilters = ListingFilters(),
    *,
    page: int = 1,
    page_size: int = 10,
) -> Page[Listing]:
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")

    rows = _sorted([r for r in available_units(g) if _matches(r, filters)], filters.sort)
    total = len(rows)
    start = (page - 1) * page_size
    return Page[Listing](
        data=rows[start : start + page_size],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size),
    )
