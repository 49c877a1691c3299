"""
Geo Service - distance and coordinate checks
"""
import logging
import math

from skateguide.exceptions import ValidationError

logger = logging.getLogger(__name__)


class GeoService:
    """Great-circle helpers used by filtering and nearby search"""

    EARTH_RADIUS_KM = 6371

    def distance_km(
        self,
        lat1: float,
        lng1: float,
        lat2: float,
        lng2: float
    ) -> float:
        """Calculate haversine distance between two points in km"""
        lat1_rad = math.radians(lat1)
        lat2_rad = math.radians(lat2)
        delta_lat = math.radians(lat2 - lat1)
        delta_lng = math.radians(lng2 - lng1)

        a = (math.sin(delta_lat / 2) ** 2 +
             math.cos(lat1_rad) * math.cos(lat2_rad) *
             math.sin(delta_lng / 2) ** 2)
        # Rounding can push a just past 1 for antipodal points
        a = min(1.0, max(0.0, a))
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

        return self.EARTH_RADIUS_KM * c

    def validate_coordinates(self, latitude, longitude) -> None:
        """Raise ValidationError unless the pair is a usable park location"""
        for name, value in (("latitude", latitude), ("longitude", longitude)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"Invalid or missing {name}.")
            if not math.isfinite(value):
                raise ValidationError(f"Invalid or missing {name}.")

        if not -90 <= latitude <= 90:
            raise ValidationError("Latitude must be between -90 and 90.")
        if not -180 <= longitude <= 180:
            raise ValidationError("Longitude must be between -180 and 180.")
        if latitude == 0 and longitude == 0:
            raise ValidationError("Invalid coordinates: location cannot be 0,0.")


# Singleton instance
geo_service = GeoService()
