"""Error types raised by the routing engine.

Every error derives from RoutingError and from the closest built-in
exception, so callers catching ValueError/RuntimeError keep working.

- ConfigurationError: invalid request, rejected before any search starts
- CoverageError: a waypoint has no resolvable elevation
- UnreachableError: a waypoint pair has no path (names the pair index)
- GeometryError: cost model received a degenerate segment (internal defect)
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from skitrack_planner.model.coordinate import Coordinate


class RoutingError(Exception):
    """Base class for all routing failures."""


class ConfigurationError(RoutingError, ValueError):
    """Request is malformed or incomplete."""


class CoverageError(RoutingError, RuntimeError):
    """A required coordinate lies outside the elevation data coverage."""

    def __init__(
        self,
        coordinate: "Coordinate",
        waypoint_index: Optional[int] = None,
    ) -> None:
        self.coordinate = coordinate
        self.waypoint_index = waypoint_index
        where = f"Waypoint {waypoint_index}" if waypoint_index is not None else "Coordinate"
        super().__init__(f"{where} at (lat={coordinate.lat:.6f}, lon={coordinate.lon:.6f}) has no elevation data")


class UnreachableError(RoutingError, RuntimeError):
    """No path exists between two waypoints.

    Attributes:
        reason: "disconnected" when the search space was exhausted,
            "expansion limit" when the search hit its node-expansion bound
        segment_index: Index of the failing waypoint pair (set by the composer)
    """

    DISCONNECTED = "disconnected"
    EXPANSION_LIMIT = "expansion limit"

    def __init__(self, reason: str, segment_index: Optional[int] = None, expanded: int = 0) -> None:
        self.reason = reason
        self.segment_index = segment_index
        self.expanded = expanded
        if segment_index is None:
            message = f"No path found ({reason}, {expanded} nodes expanded)"
        else:
            message = (
                f"No path between waypoint {segment_index} and waypoint {segment_index + 1} "
                f"({reason}, {expanded} nodes expanded)"
            )
        super().__init__(message)


class GeometryError(RoutingError, ArithmeticError):
    """Degenerate geometry reached the cost model."""
