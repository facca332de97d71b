"""Geodesic calculations and the planar frame used for grid routing.

Provides geographic helper functions for track planning:
- Distance calculation (Haversine formula) for track metrics
- UTM zone lookup for a coordinate
- LocalFrame: metric UTM frame anchored at an origin, used to lay out the
  routing grid and to test barrier intersections in meters

Spherical calculations use the WGS84 spherical Earth approximation (R = 6,371 km).
"""

import threading
from math import atan2, cos, floor, radians, sin, sqrt

import pyproj

from skitrack_planner.constants import DEMConfig

# Earth's radius in meters (WGS84 spherical approximation)
EARTH_RADIUS_M = 6_371_000


class GeoCalculator:
    """Static methods for geodesic calculations on Earth's surface.

    Coordinates are in decimal degrees (WGS84). Distances are in meters.
    """

    EARTH_RADIUS_M = EARTH_RADIUS_M

    @staticmethod
    def haversine_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Calculate great-circle distance between two points using Haversine formula.

        Args:
            lat1: Latitude of first point (decimal degrees)
            lon1: Longitude of first point (decimal degrees)
            lat2: Latitude of second point (decimal degrees)
            lon2: Longitude of second point (decimal degrees)

        Returns:
            Distance in meters.
        """
        dlat = radians(lat2 - lat1)
        dlon = radians(lon2 - lon1)
        a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
        return EARTH_RADIUS_M * 2 * atan2(sqrt(a), sqrt(1 - a))

    @staticmethod
    def utm_crs(lon: float, lat: float) -> str:
        """Get UTM zone EPSG code for given coordinates."""
        zone_number = min(floor((lon + 180) / 6) + 1, 60)
        if lat >= 0:
            return f"EPSG:326{zone_number:02d}"
        return f"EPSG:327{zone_number:02d}"


class LocalFrame:
    """Planar metric frame anchored at an origin coordinate.

    Positions are UTM easting/northing relative to the origin, so the origin
    maps to exactly (0, 0). The UTM zone is chosen from the origin and kept
    for the whole frame, even when a route crosses a zone border.

    pyproj transformers are created per thread; a frame can be shared by
    concurrent searches.

    Example:
        frame = LocalFrame(origin_lon=8.9, origin_lat=61.5)
        x, y = frame.to_xy(lon=8.91, lat=61.5)   # ~533 m east, 0 m north
        lon, lat = frame.to_lon_lat(x=x, y=y)
    """

    def __init__(self, origin_lon: float, origin_lat: float) -> None:
        self.origin_lon = origin_lon
        self.origin_lat = origin_lat
        self.crs = GeoCalculator.utm_crs(lon=origin_lon, lat=origin_lat)
        self._local = threading.local()
        self._easting0, self._northing0 = self._forward().transform(origin_lon, origin_lat)

    def _forward(self) -> pyproj.Transformer:
        transformer = getattr(self._local, "forward", None)
        if transformer is None:
            transformer = pyproj.Transformer.from_crs(DEMConfig.WGS84, self.crs, always_xy=True)
            self._local.forward = transformer
        return transformer

    def _inverse(self) -> pyproj.Transformer:
        transformer = getattr(self._local, "inverse", None)
        if transformer is None:
            transformer = pyproj.Transformer.from_crs(self.crs, DEMConfig.WGS84, always_xy=True)
            self._local.inverse = transformer
        return transformer

    def to_xy(self, lon: float, lat: float) -> tuple[float, float]:
        """Project WGS84 degrees to frame meters (x east, y north)."""
        easting, northing = self._forward().transform(lon, lat)
        return easting - self._easting0, northing - self._northing0

    def to_lon_lat(self, x: float, y: float) -> tuple[float, float]:
        """Inverse of to_xy."""
        lon, lat = self._inverse().transform(x + self._easting0, y + self._northing0)
        return float(lon), float(lat)

    def __repr__(self) -> str:
        return f"LocalFrame({self.crs}, origin=({self.origin_lat:.6f}, {self.origin_lon:.6f}))"
