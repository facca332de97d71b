"""Data model classes for track planning.

- Coordinate: Geometry atom (lat, lon, optional elevation)
- BarrierSegment: Straight line the track may not cross
- RouteRequest: Validated routing input (JSON request file)
- Track: Composed route with computed metrics and GPX export
"""

from skitrack_planner.model.barrier import BarrierSegment
from skitrack_planner.model.coordinate import Coordinate
from skitrack_planner.model.route_request import RouteRequest
from skitrack_planner.model.track import Track, format_duration

__all__ = [
    "Coordinate",
    "BarrierSegment",
    "RouteRequest",
    "Track",
    "format_duration",
]
