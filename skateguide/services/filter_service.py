"""
Filter Service - applies a FilterState to a list of skateparks

Filters are AND-combined and evaluated in a fixed order. Sorting is
stable: ties keep their input order.
"""
import logging
from typing import Iterable, List, Optional

from skateguide.schemas.schemas import (
    AnnotatedSkatepark, Coordinates, FilterState, SkateparkResponse, SkaterLevel
)
from skateguide.services.geo_service import geo_service

logger = logging.getLogger(__name__)


class FilterService:
    """In-memory filter and sort engine for park listings"""

    def matches(
        self,
        park: SkateparkResponse,
        filters: FilterState,
        user_coords: Optional[Coordinates],
        favorite_ids: set
    ) -> bool:
        """True when the park passes every enabled filter"""
        # Search term
        if filters.search_term:
            needle = filters.search_term.lower()
            found = (
                needle in park.title.lower()
                or needle in (park.description or "").lower()
                or any(needle in tag.lower() for tag in park.tags)
            )
            if not found:
                return False

        # Park or street
        if filters.type_filter == "park" and not park.is_park:
            return False
        if filters.type_filter == "street" and park.is_park:
            return False

        if filters.size_filter:
            sizes = {size.value for size in filters.size_filter}
            if park.size not in sizes:
                return False

        if filters.level_filter and SkaterLevel.all_levels not in filters.level_filter:
            levels = {level.value for level in filters.level_filter}
            if not levels.intersection(level for level in park.levels if level):
                return False

        if filters.tag_filter:
            tags = {tag.value for tag in filters.tag_filter}
            if not tags.intersection(park.tags):
                return False

        # Without the user's position the radius cannot be evaluated: pass through
        if filters.distance_filter_enabled and user_coords is not None:
            distance = geo_service.distance_km(
                user_coords.lat, user_coords.lng, park.latitude, park.longitude
            )
            if distance > filters.distance_filter:
                return False

        if filters.rating_filter_enabled:
            low, high = filters.rating_filter
            if park.avg_rating < low or park.avg_rating > high:
                return False

        if filters.show_only_favorites and park.id not in favorite_ids:
            return False

        if filters.show_only_approved and not park.is_approved:
            return False

        return True

    def annotate(
        self,
        park: SkateparkResponse,
        user_coords: Optional[Coordinates],
        deleting_ids: set
    ) -> AnnotatedSkatepark:
        distance = None
        if user_coords is not None:
            distance = geo_service.distance_km(
                user_coords.lat, user_coords.lng, park.latitude, park.longitude
            )

        return AnnotatedSkatepark(
            **park.model_dump(),
            coordinates=Coordinates(lat=park.latitude, lng=park.longitude),
            distance_km=distance,
            is_deleting=park.id in deleting_ids
        )

    def sort(
        self,
        parks: List[AnnotatedSkatepark],
        sort_by: str,
        has_coords: bool
    ) -> List[AnnotatedSkatepark]:
        """Stable sort; 'distance' without coordinates falls back to 'rating'"""
        if sort_by == "distance" and not has_coords:
            sort_by = "rating"

        if sort_by == "distance":
            return sorted(parks, key=lambda p: p.distance_km)
        if sort_by == "rating":
            return sorted(parks, key=lambda p: p.avg_rating, reverse=True)
        if sort_by == "recent":
            # created_at is the creation-time key; id only separates equal timestamps
            return sorted(
                parks,
                key=lambda p: (p.created_at is not None, p.created_at or 0, p.id),
                reverse=True
            )
        return list(parks)

    def filter_and_sort(
        self,
        parks: Iterable[SkateparkResponse],
        filters: FilterState,
        user_coords: Optional[Coordinates] = None,
        favorite_ids: Iterable[int] = (),
        excluded_ids: Iterable[int] = (),
        deleting_ids: Iterable[int] = ()
    ) -> List[AnnotatedSkatepark]:
        """Filter, annotate and order parks for a listing"""
        favorite_ids = set(favorite_ids)
        excluded_ids = set(excluded_ids)
        deleting_ids = set(deleting_ids)

        results = [
            self.annotate(park, user_coords, deleting_ids)
            for park in parks
            if park is not None
            and park.id not in excluded_ids
            and self.matches(park, filters, user_coords, favorite_ids)
        ]

        logger.debug(f"Filtered to {len(results)} parks (sort_by={filters.sort_by})")
        return self.sort(results, filters.sort_by, user_coords is not None)


# Singleton instance
filter_service = FilterService()
