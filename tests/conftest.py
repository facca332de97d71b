"""Shared pytest fixtures for skitrack_planner tests.

Provides mock elevation providers and helpers for building waypoints on a
known metric grid.

COORDINATE SYSTEM:
    Tests work in a LocalFrame anchored at ORIGIN (Alps, UTM zone 32). Test
    points are written as frame meters and converted with frame.to_lon_lat(),
    and the mock DEMs convert back with frame.to_xy(). Lattice node (col, row)
    of a graph with resolution r sits at frame position (col * r, row * r).
"""

import threading
from collections import Counter
from typing import Callable, Optional

import pytest

from skitrack_planner.core.geo_calculator import LocalFrame
from skitrack_planner.model.coordinate import Coordinate

# Frame origin used by all frame-based fixtures (lon, lat)
ORIGIN_LON = 10.0
ORIGIN_LAT = 46.5

# Base elevation of the synthetic terrain in meters
BASE_ELEVATION = 2000.0


# =============================================================================
# MOCK DEM SERVICES
# =============================================================================


class FlatDEM:
    """Constant elevation, optionally limited to a lon/lat bounding box.

    Outside the bounds get_elevation() returns None, like DEMService does
    outside its raster.
    """

    def __init__(
        self,
        elevation: float = BASE_ELEVATION,
        bounds: Optional[tuple[float, float, float, float]] = None,
    ) -> None:
        self.elevation = elevation
        self._bounds = bounds

    @property
    def is_loaded(self) -> bool:
        return True

    @property
    def bounds(self) -> Optional[tuple[float, float, float, float]]:
        return self._bounds

    def get_elevation(self, lon: float, lat: float) -> Optional[float]:
        if self._bounds is not None:
            min_lon, min_lat, max_lon, max_lat = self._bounds
            if not (min_lon <= lon <= max_lon and min_lat <= lat <= max_lat):
                return None
        return self.elevation

    def close(self) -> None:
        pass


class FrameDEM:
    """Elevation given as a function of frame meters.

    Example:
        FrameDEM(frame, lambda x, y: 2000 + 0.2 * y)  # 20% slope rising north
    """

    def __init__(self, frame: LocalFrame, height: Callable[[float, float], Optional[float]]) -> None:
        self.frame = frame
        self.height = height

    def get_elevation(self, lon: float, lat: float) -> Optional[float]:
        x, y = self.frame.to_xy(lon=lon, lat=lat)
        return self.height(x, y)


class GridDEM(FrameDEM):
    """Per-lattice-point elevations for a grid of the given resolution.

    Locations are rounded to the nearest lattice point; points not in the
    table return `default`.
    """

    def __init__(
        self,
        frame: LocalFrame,
        resolution_m: float,
        heights: dict[tuple[int, int], float],
        default: Optional[float] = None,
    ) -> None:
        self.heights = heights
        self.default = default
        super().__init__(
            frame=frame,
            height=lambda x, y: heights.get((round(x / resolution_m), round(y / resolution_m)), default),
        )


class CountingDEM:
    """Wraps a provider and counts calls per location (thread-safe)."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.calls: Counter = Counter()
        self._lock = threading.Lock()

    def get_elevation(self, lon: float, lat: float) -> Optional[float]:
        with self._lock:
            self.calls[(lon, lat)] += 1
        return self.inner.get_elevation(lon=lon, lat=lat)

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def frame() -> LocalFrame:
    """LocalFrame at ORIGIN, the same frame a composer builds for routes starting there."""
    return LocalFrame(origin_lon=ORIGIN_LON, origin_lat=ORIGIN_LAT)


@pytest.fixture
def at(frame: LocalFrame) -> Callable[[float, float], Coordinate]:
    """Build a Coordinate from frame meters: at(250, 0) is 250 m east of ORIGIN."""

    def make(x: float, y: float) -> Coordinate:
        lon, lat = frame.to_lon_lat(x=x, y=y)
        return Coordinate(lat=lat, lon=lon)

    return make


@pytest.fixture
def flat_dem() -> FlatDEM:
    """Flat terrain at BASE_ELEVATION everywhere."""
    return FlatDEM()


@pytest.fixture
def north_slope_dem(frame: LocalFrame) -> FrameDEM:
    """Uniform 20% slope rising to the north."""
    return FrameDEM(frame=frame, height=lambda x, y: BASE_ELEVATION + 0.2 * y)


@pytest.fixture
def ridge_dem(frame: LocalFrame) -> FrameDEM:
    """Flat terrain with a 300 m high ridge running north-south at x in [200, 300]."""

    def height(x: float, y: float) -> float:
        return BASE_ELEVATION + (300.0 if 200.0 <= x <= 300.0 and -150.0 <= y <= 150.0 else 0.0)

    return FrameDEM(frame=frame, height=height)
