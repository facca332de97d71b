"""Coordinate - The geometry atom for track planning.

A Coordinate is a single WGS84 location, optionally annotated with the
elevation resolved from the DEM. Waypoints, barrier endpoints and every point
of a computed track are Coordinates.
"""

import math
from dataclasses import dataclass, replace
from typing import Any, Optional

from skitrack_planner.core.errors import ConfigurationError
from skitrack_planner.core.geo_calculator import GeoCalculator


@dataclass(frozen=True)
class Coordinate:
    """A geographic point with optional elevation.

    Attributes:
        lat: Latitude in decimal degrees (WGS84)
        lon: Longitude in decimal degrees (WGS84)
        elevation: Elevation in meters above sea level, None if not resolved

    Example:
        point = Coordinate(lat=61.5, lon=8.9)
        annotated = point.with_elevation(1450.0)
    """

    lat: float
    lon: float
    elevation: Optional[float] = None

    def __post_init__(self) -> None:
        """Reject non-finite or out-of-range values."""
        if not (math.isfinite(self.lat) and math.isfinite(self.lon)):
            raise ConfigurationError(f"Coordinate must be finite, got (lat={self.lat}, lon={self.lon})")
        if not -90.0 <= self.lat <= 90.0:
            raise ConfigurationError(f"Latitude {self.lat} outside [-90, 90]")
        if not -180.0 <= self.lon <= 180.0:
            raise ConfigurationError(f"Longitude {self.lon} outside [-180, 180]")
        if self.elevation is not None and math.isnan(self.elevation):
            raise ConfigurationError(f"Coordinate cannot have NaN elevation at ({self.lat}, {self.lon})")

    @property
    def lat_lon(self) -> tuple[float, float]:
        """Return (lat, lon) tuple - standard geographic order."""
        return (self.lat, self.lon)

    @property
    def lon_lat(self) -> tuple[float, float]:
        """Return (lon, lat) tuple - GeoJSON/projection order."""
        return (self.lon, self.lat)

    def with_elevation(self, elevation: Optional[float]) -> "Coordinate":
        """Return a copy annotated with the given elevation."""
        return replace(self, elevation=elevation)

    def same_location(self, other: "Coordinate") -> bool:
        """True if both coordinates have identical lat/lon (elevation ignored)."""
        return self.lat == other.lat and self.lon == other.lon

    def distance_to(self, other: "Coordinate") -> float:
        """Great-circle distance to another coordinate in meters."""
        return GeoCalculator.haversine_distance_m(
            lat1=self.lat,
            lon1=self.lon,
            lat2=other.lat,
            lon2=other.lon,
        )

    @classmethod
    def parse(cls, data: Any) -> "Coordinate":
        """Create a Coordinate from {"lat", "lon"[, "elevation"]} or a [lat, lon] pair.

        Raises:
            ConfigurationError: If the value has the wrong shape or type.
        """
        try:
            if isinstance(data, dict):
                elevation = data.get("elevation")
                return cls(
                    lat=float(data["lat"]),
                    lon=float(data["lon"]),
                    elevation=None if elevation is None else float(elevation),
                )
            if isinstance(data, (list, tuple)) and len(data) in (2, 3):
                return cls(
                    lat=float(data[0]),
                    lon=float(data[1]),
                    elevation=float(data[2]) if len(data) == 3 else None,
                )
        except (KeyError, TypeError, ValueError) as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Malformed coordinate {data!r}: {e}") from e
        raise ConfigurationError(f"Malformed coordinate {data!r}: expected {{'lat', 'lon'}} or [lat, lon]")

    def to_dict(self) -> dict[str, float]:
        """Serialize to a JSON-compatible dict."""
        data = {"lat": self.lat, "lon": self.lon}
        if self.elevation is not None:
            data["elevation"] = self.elevation
        return data

    def __repr__(self) -> str:
        elev = "?" if self.elevation is None else f"{self.elevation:.1f}m"
        return f"Coordinate(lat={self.lat:.6f}, lon={self.lon:.6f}, elev={elev})"
