"""Barrier index - answers whether a graph edge crosses a barrier.

Geometry runs in LocalFrame meters. The contact test is a pure function over
two segments (orientation predicates, exact zero tests); the index adds an
STRtree envelope lookup so an edge is only tested against nearby barriers.

Blocking rules for an edge a-b against a barrier p-q:
- proper crossing (interiors intersect at a single point): blocked
- edge touches the barrier interior (an edge endpoint lies on p-q, or the
  edge runs through the barrier's middle): blocked, otherwise a route could
  step onto the line and off on the other side
- edge touches a barrier endpoint: allowed when that endpoint is a free end,
  blocked when it is a joint shared with another barrier segment
- collinear overlap (walking along the barrier): allowed
- zero-length edge or barrier: never blocks
"""

import logging
from enum import Enum
from typing import Sequence

from shapely import STRtree
from shapely.geometry import LineString

from skitrack_planner.core.geo_calculator import LocalFrame
from skitrack_planner.model.barrier import BarrierSegment
from skitrack_planner.model.coordinate import Coordinate

logger = logging.getLogger(__name__)

Point = tuple[float, float]


class Contact(Enum):
    """How a candidate segment meets a barrier segment."""

    NONE = "none"
    PROPER = "proper"
    INTERIOR = "interior"
    AT_START = "at_start"
    AT_END = "at_end"
    COLLINEAR = "collinear"


def orientation(a: Point, b: Point, c: Point) -> float:
    """Twice the signed area of triangle abc (> 0 when c is left of a->b)."""
    return (b[0] - a[0]) * (c[1] - a[1]) - (c[0] - a[0]) * (b[1] - a[1])


def _within_box(a: Point, b: Point, c: Point) -> bool:
    """True if c lies in the bounding box of a-b (c assumed collinear)."""
    return min(a[0], b[0]) <= c[0] <= max(a[0], b[0]) and min(a[1], b[1]) <= c[1] <= max(a[1], b[1])


def segment_contact(a: Point, b: Point, p: Point, q: Point) -> Contact:
    """Classify how segment a-b meets barrier segment p-q.

    Non-collinear segments meet in at most one point, so the touching cases
    are mutually exclusive: AT_START/AT_END when that point is p/q, INTERIOR
    when it lies strictly inside p-q.
    """
    if a == b or p == q:
        return Contact.NONE

    o1 = orientation(p, q, a)
    o2 = orientation(p, q, b)
    o3 = orientation(a, b, p)
    o4 = orientation(a, b, q)

    if o1 == 0 and o2 == 0:
        overlaps = (
            _within_box(p, q, a) or _within_box(p, q, b) or _within_box(a, b, p) or _within_box(a, b, q)
        )
        return Contact.COLLINEAR if overlaps else Contact.NONE

    if ((o1 < 0 < o2) or (o2 < 0 < o1)) and ((o3 < 0 < o4) or (o4 < 0 < o3)):
        return Contact.PROPER

    if o3 == 0 and _within_box(a, b, p):
        return Contact.AT_START
    if o4 == 0 and _within_box(a, b, q):
        return Contact.AT_END
    if (o1 == 0 and _within_box(p, q, a)) or (o2 == 0 and _within_box(p, q, b)):
        return Contact.INTERIOR
    return Contact.NONE


class BarrierIndex:
    """Immutable set of barrier segments projected into a LocalFrame.

    Safe for concurrent reads: nothing changes after construction.

    Example:
        index = BarrierIndex(frame=frame, segments=request.barriers)
        index.blocks(a=start, b=target)
    """

    def __init__(self, frame: LocalFrame, segments: Sequence[BarrierSegment] = ()) -> None:
        self.frame = frame
        self.segments = tuple(segments)
        self._xy: tuple[tuple[Point, Point], ...] = tuple(
            (
                frame.to_xy(lon=s.start.lon, lat=s.start.lat),
                frame.to_xy(lon=s.end.lon, lat=s.end.lat),
            )
            for s in self.segments
        )

        # Endpoints used by more than one segment are joints of a polyline
        usage: dict[Point, int] = {}
        for p, q in self._xy:
            usage[p] = usage.get(p, 0) + 1
            usage[q] = usage.get(q, 0) + 1
        self._joints = frozenset(point for point, count in usage.items() if count > 1)

        self._tree = STRtree([LineString([p, q]) for p, q in self._xy]) if self._xy else None
        if self.segments:
            logger.debug(f"Barrier index: {len(self.segments)} segments, {len(self._joints)} joints")

    def __len__(self) -> int:
        return len(self.segments)

    @property
    def segments_xy(self) -> tuple[tuple[Point, Point], ...]:
        """Barrier segments in frame meters, in input order."""
        return self._xy

    @property
    def joints(self) -> frozenset[Point]:
        """Endpoints shared by two or more segments."""
        return self._joints

    def blocks_xy(self, a: Point, b: Point) -> bool:
        """True if the edge a-b (frame meters) may not be generated."""
        if self._tree is None or a == b:
            return False

        for i in self._tree.query(LineString([a, b])):
            p, q = self._xy[int(i)]
            contact = segment_contact(a, b, p, q)
            if contact in (Contact.PROPER, Contact.INTERIOR):
                return True
            if contact is Contact.AT_START and p in self._joints:
                return True
            if contact is Contact.AT_END and q in self._joints:
                return True
        return False

    def blocks(self, a: Coordinate, b: Coordinate) -> bool:
        """True if the straight connection between two coordinates is blocked."""
        return self.blocks_xy(
            a=self.frame.to_xy(lon=a.lon, lat=a.lat),
            b=self.frame.to_xy(lon=b.lon, lat=b.lat),
        )
