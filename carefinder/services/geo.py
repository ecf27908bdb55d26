"""
Geographic radius filtering
"""

from carefinder.vectorstore.vector_math import GeoCoordinates, haversine_km


class GeoFilter:
    """Radius predicate and distance annotation over (longitude, latitude) points."""

    @staticmethod
    def annotate_distance(point: GeoCoordinates, center: GeoCoordinates) -> float:
        return haversine_km(point, center)

    @staticmethod
    def within_radius(point: GeoCoordinates, center: GeoCoordinates, radius_km: float) -> bool:
        """Inclusive: a point exactly at `radius_km` is within."""
        return haversine_km(point, center) <= radius_km
