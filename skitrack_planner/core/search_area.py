"""Search areas restricting which lattice nodes a single search may visit.

- EllipseArea: covering ellipse around a waypoint pair (coarse pass)
- CorridorArea: buffer around a coarse route (refinement pass)

Both work in LocalFrame meters and only ever filter lattice nodes; waypoint
anchors are always admitted.
"""

from math import sqrt
from typing import Protocol, Sequence

import shapely
from shapely.geometry import LineString, Point

from skitrack_planner.core.errors import ConfigurationError


class SearchArea(Protocol):
    """Predicate over frame positions."""

    def contains(self, x: float, y: float) -> bool:
        ...


class EllipseArea:
    """Ellipse covering the straight line between two points.

    The semi-major axis is `covering_length` times half the pair distance and
    lies along the pair direction; the semi-minor axis is `covering_width`
    times half the pair distance.

    Example:
        area = EllipseArea(a=(0, 0), b=(1000, 0), covering_length=1.2, covering_width=0.6)
        area.contains(500, 250)  # True
    """

    def __init__(
        self,
        a: tuple[float, float],
        b: tuple[float, float],
        covering_length: float,
        covering_width: float,
    ) -> None:
        if covering_length < 1.0:
            raise ConfigurationError(f"covering_length must be >= 1, got {covering_length}")
        if covering_width <= 0 or covering_width > covering_length:
            raise ConfigurationError(
                f"covering_width must be in (0, covering_length], got {covering_width} (length {covering_length})"
            )
        ox, oy = (a[0] + b[0]) / 2, (a[1] + b[1]) / 2
        radius = sqrt((a[0] - ox) ** 2 + (a[1] - oy) ** 2)
        self.major = radius * covering_length
        minor = radius * covering_width
        focal = sqrt(self.major**2 - minor**2)
        scale = focal / self.major if self.major > 0 else 0.0
        self.f1 = (ox + (a[0] - ox) * scale, oy + (a[1] - oy) * scale)
        self.f2 = (ox + (b[0] - ox) * scale, oy + (b[1] - oy) * scale)

    def contains(self, x: float, y: float) -> bool:
        d1 = sqrt((x - self.f1[0]) ** 2 + (y - self.f1[1]) ** 2)
        d2 = sqrt((x - self.f2[0]) ** 2 + (y - self.f2[1]) ** 2)
        return d1 + d2 <= 2 * self.major


class CorridorArea:
    """Buffer of the given half-width around a polyline."""

    def __init__(self, points: Sequence[tuple[float, float]], half_width: float) -> None:
        if half_width <= 0:
            raise ConfigurationError(f"Corridor width must be positive, got {half_width}")
        geometry = LineString(points) if len(points) > 1 else Point(points[0])
        self.polygon = geometry.buffer(half_width)
        shapely.prepare(self.polygon)

    def contains(self, x: float, y: float) -> bool:
        return bool(shapely.intersects_xy(self.polygon, x, y))
