"""
Service search: filter, attach distance, sort and paginate.

Filtering on category, rating and price happens in SQL. Distance is derived
from the provider's coordinates and never stored, so whenever it takes part
in filtering or ordering the whole candidate set is loaded, filtered and
sorted in memory before the page is cut. Otherwise ordering and pagination
are pushed down to the database.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from servicehub.models import Category, Provider, Service
from servicehub.services.db_service import DBService
from servicehub.services.geo import distance_or_none

SORT_OPTIONS = ("price", "rating", "distance", "newest")
DEFAULT_LIMIT = 20
MAX_LIMIT = 50


@dataclass
class SearchFilters:
    category: Optional[str] = None
    min_rating: float = 0.0
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    max_distance: Optional[float] = None
    sort_by: str = "newest"
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @property
    def has_origin(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def filters_by_distance(self) -> bool:
        return self.has_origin and self.max_distance is not None

    @property
    def sorts_by_distance(self) -> bool:
        return self.has_origin and self.sort_by == "distance"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class SearchResult:
    service: Service
    distance: Optional[float] = None


@dataclass
class SearchPage:
    results: List[SearchResult]
    total_count: int
    page: int
    limit: int
    with_distance: bool = False

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total_count

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def pagination(self) -> dict[str, Any]:
        return {
            "currentPage": self.page,
            "totalPages": self.total_pages,
            "totalCount": self.total_count,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


def build_conditions(filters: SearchFilters) -> List[Any]:
    conditions: List[Any] = [
        Service.is_active.is_(True),
        Provider.is_available.is_(True),
        Provider.average_rating >= filters.min_rating,
    ]
    if filters.category:
        conditions.append(Category.name.icontains(filters.category, autoescape=True))
    if filters.min_price is not None:
        conditions.append(Service.base_price >= filters.min_price)
    if filters.max_price is not None:
        conditions.append(Service.base_price <= filters.max_price)
    return conditions


def build_order_by(sort_by: str) -> Tuple[Any, ...]:
    if sort_by == "price":
        primary = Service.base_price.asc()
    elif sort_by == "rating":
        primary = Provider.average_rating.desc()
    else:
        # newest; also distance when no origin was supplied
        primary = Service.created_at.desc()
    return (primary, Service.id.asc())


def _attach_distance(service: Service, filters: SearchFilters) -> SearchResult:
    user = service.provider.user
    distance = distance_or_none(
        filters.latitude,
        filters.longitude,
        user.latitude if user else None,
        user.longitude if user else None,
    )
    return SearchResult(service=service, distance=distance)


async def search_services(db_service: DBService, filters: SearchFilters) -> SearchPage:
    conditions = build_conditions(filters)
    order_by = build_order_by(filters.sort_by)

    if filters.filters_by_distance or filters.sorts_by_distance:
        candidates = await db_service.find_services(conditions, order_by)
        results = [_attach_distance(service, filters) for service in candidates]

        if filters.filters_by_distance:
            results = [
                r for r in results
                if r.distance is not None and r.distance <= filters.max_distance
            ]
        if filters.sort_by == "distance":
            # Stable sort keeps SQL order among equal distances; unknown last
            results.sort(key=lambda r: r.distance if r.distance is not None else math.inf)

        page_results = results[filters.offset:filters.offset + filters.limit]
        return SearchPage(
            results=page_results,
            total_count=len(results),
            page=filters.page,
            limit=filters.limit,
            with_distance=True,
        )

    services = await db_service.find_services(
        conditions,
        order_by,
        offset=filters.offset,
        limit=filters.limit,
    )
    total_count = await db_service.count_services(conditions)

    if filters.has_origin:
        results = [_attach_distance(service, filters) for service in services]
    else:
        results = [SearchResult(service=service) for service in services]

    return SearchPage(
        results=results,
        total_count=total_count,
        page=filters.page,
        limit=filters.limit,
        with_distance=filters.has_origin,
    )
