"""BarrierSegment - A straight line the track must never cross.

Barriers arrive from the request file as polylines; each consecutive pair of
polyline points becomes one BarrierSegment.
"""

from dataclasses import dataclass
from typing import Any, Sequence

from skitrack_planner.core.errors import ConfigurationError
from skitrack_planner.model.coordinate import Coordinate


@dataclass(frozen=True)
class BarrierSegment:
    """Two endpoints forming a straight exclusion segment.

    Attributes:
        start: First endpoint
        end: Second endpoint

    Raises:
        ConfigurationError: If both endpoints are the same location.
    """

    start: Coordinate
    end: Coordinate

    def __post_init__(self) -> None:
        if self.start.same_location(self.end):
            raise ConfigurationError(f"Barrier segment has zero length at {self.start}")

    @property
    def length_m(self) -> float:
        """Great-circle length in meters."""
        return self.start.distance_to(other=self.end)

    @classmethod
    def chain(cls, points: Sequence[Coordinate]) -> list["BarrierSegment"]:
        """Split a polyline into consecutive segments.

        Raises:
            ConfigurationError: If fewer than two points are given.
        """
        if len(points) < 2:
            raise ConfigurationError(f"Barrier needs at least two points, got {len(points)}")
        return [cls(start=points[i], end=points[i + 1]) for i in range(len(points) - 1)]

    @classmethod
    def parse_polyline(cls, data: Any) -> list["BarrierSegment"]:
        """Parse a request-file barrier entry (list of coordinates)."""
        if not isinstance(data, (list, tuple)):
            raise ConfigurationError(f"Barrier must be a list of coordinates, got {data!r}")
        return cls.chain(points=[Coordinate.parse(p) for p in data])

    def to_list(self) -> list[dict[str, float]]:
        """Serialize as a two-point polyline."""
        return [self.start.to_dict(), self.end.to_dict()]

    def __repr__(self) -> str:
        return f"BarrierSegment(({self.start.lat:.6f}, {self.start.lon:.6f}) -> ({self.end.lat:.6f}, {self.end.lon:.6f}))"
