# backend/rentline/routers/listings.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..config import settings
from ..domain.listings import SORTS, ListingFilters, search_listings
from ..schemas import Listing, Page
from ..services.snapshot_loader import VIEW_COLLECTIONS, load_graph
from ..store.base import EntityStore
from ..store.factory import get_store

router = APIRouter(prefix="/listings", tags=["listings"])


@router.get("", response_model=Page[Listing])
async def listings(
    city: Optional[str] = Query(default=None),
    county: Optional[str] = Query(default=None),
    min_rent: Optional[float] = Query(default=None, ge=0),
    max_rent: Optional[float] = Query(default=None, ge=0),
    bedrooms: Optional[int] = Query(default=None, ge=0),
    unit_type: Optional[str] = Query(default=None),
    q: Optional[str] = Query(default=None),
    sort: str = Query(default="newest", description="|".join(SORTS)),
    page: int = Query(default=1, ge=1),
    store: EntityStore = Depends(get_store),
):
    """Public search over available units. No actor required."""
    if sort not in SORTS:
        raise HTTPException(status_code=400, detail=f"sort must be one of {', '.join(SORTS)}")

    graph = await load_graph(store, VIEW_COLLECTIONS["listings"])
    filters = ListingFilters(
        city=city,
        county=county,
        min_rent=min_rent,
        max_rent=max_rent,
        bedrooms=bedrooms,
        unit_type=unit_type,
        search=q,
        sort=sort,
    )
    return search_listings(graph, filters, page=page, page_size=settings.listings_page_size)
