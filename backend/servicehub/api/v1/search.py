from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.core.database import get_db
from servicehub.services.db_service import DBService
from servicehub.services.search import DEFAULT_LIMIT, MAX_LIMIT, SearchFilters, search_services
from servicehub.services.serializers import category_to_dict, service_to_dict

router = APIRouter(tags=["search"])

POPULAR_MIN_RATING = 4.0
POPULAR_LIMIT = 10


@router.get("/services")
async def list_services(
    category: Optional[str] = Query(None),
    min_rating: float = Query(0, ge=0, le=5, alias="minRating"),
    max_distance: Optional[float] = Query(None, ge=0, alias="maxDistance"),
    min_price: Optional[float] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[float] = Query(None, ge=0, alias="maxPrice"),
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    sort_by: Literal["price", "rating", "distance", "newest"] = Query("newest", alias="sortBy"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: AsyncSession = Depends(get_db),
):
    """Search active services of available providers"""
    filters = SearchFilters(
        category=category,
        min_rating=min_rating,
        min_price=min_price,
        max_price=max_price,
        latitude=latitude,
        longitude=longitude,
        max_distance=max_distance,
        sort_by=sort_by,
        page=page,
        limit=limit,
    )
    result = await search_services(DBService(db), filters)

    return {
        "services": [
            service_to_dict(r.service, r.distance, with_distance=result.with_distance)
            for r in result.results
        ],
        "pagination": result.pagination(),
    }


@router.get("/categories")
async def list_categories(db: AsyncSession = Depends(get_db)):
    """Active categories with their service counts"""
    categories = await DBService(db).list_active_categories()
    return {
        "categories": [
            {**category_to_dict(category), "serviceCount": count}
            for category, count in categories
        ]
    }


@router.get("/popular")
async def list_popular_services(db: AsyncSession = Depends(get_db)):
    """Top rated services, most reviewed first among equal ratings"""
    services = await DBService(db).list_popular_services(POPULAR_MIN_RATING, POPULAR_LIMIT)
    return {
        "services": [
            {**service_to_dict(service), "bookingCount": count}
            for service, count in services
        ]
    }
