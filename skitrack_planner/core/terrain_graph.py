"""Terrain graph - lazily generated routing graph over a DEM.

The graph is never materialized. Nodes are lattice points of a square grid
laid out in LocalFrame meters (identity = integer grid index); edges are
produced on demand when the planner asks for the neighbors of a node:

1. enumerate the fixed neighbor offsets (4, 8 or 16-connected)
2. drop candidates outside the bounding extent / search area
3. resolve the candidate's elevation (memoized, one provider call per node)
4. drop lattice candidates steeper than the steepness limit
5. drop candidates whose connecting segment is blocked by a barrier
6. price the edge with the cost model

Waypoints that do not sit on a lattice point become anchor nodes, wired to
the four corners of the grid cell containing them, so a route starts and
ends exactly at the requested coordinates.

Candidates without elevation data are silently excluded; an unresolvable
waypoint raises CoverageError when it is registered.
"""

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from math import floor, hypot
from typing import Callable, Iterable, Optional, Sequence

from skitrack_planner.constants import GridConfig
from skitrack_planner.core.barrier_index import BarrierIndex
from skitrack_planner.core.cost_model import CostModel
from skitrack_planner.core.dem_service import ElevationProvider
from skitrack_planner.core.errors import ConfigurationError, CoverageError
from skitrack_planner.core.geo_calculator import LocalFrame
from skitrack_planner.core.search_area import SearchArea
from skitrack_planner.model.coordinate import Coordinate

logger = logging.getLogger(__name__)

LATTICE = -1


@dataclass(frozen=True, order=True)
class GraphNode:
    """A node in the terrain graph.

    Lattice nodes are identified by their grid index. Anchor nodes (off-grid
    waypoints) carry the cell they lie in plus their anchor number.

    Attributes:
        col: Grid column (x / resolution)
        row: Grid row (y / resolution)
        anchor: Anchor number, LATTICE (-1) for lattice nodes
    """

    col: int
    row: int
    anchor: int = LATTICE

    @property
    def is_anchor(self) -> bool:
        return self.anchor != LATTICE

    def __repr__(self) -> str:
        if self.is_anchor:
            return f"GraphNode(anchor={self.anchor}, cell=({self.col}, {self.row}))"
        return f"GraphNode({self.col}, {self.row})"


@dataclass(frozen=True)
class Extent:
    """Axis-aligned bounding box in frame meters."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def contains(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    @classmethod
    def around(
        cls,
        points: Iterable[tuple[float, float]],
        margin_factor: float = GridConfig.EXTENT_MARGIN_FACTOR,
        min_margin_m: float = GridConfig.MIN_EXTENT_MARGIN_M,
    ) -> "Extent":
        """Bounding box of the points grown by max(min_margin_m, margin_factor * span)."""
        xs, ys = zip(*points)
        span = max(max(xs) - min(xs), max(ys) - min(ys))
        margin = max(min_margin_m, margin_factor * span)
        return cls(min(xs) - margin, min(ys) - margin, max(xs) + margin, max(ys) + margin)


class ElevationMemo:
    """Concurrent get-or-compute cache of node elevations.

    The first caller for a node runs the resolver; concurrent callers for the
    same node block on its Future. Each node is resolved at most once for the
    memo's lifetime.
    """

    def __init__(self, resolver: Callable[[GraphNode], Optional[float]]) -> None:
        self._resolver = resolver
        self._lock = threading.Lock()
        self._entries: dict[GraphNode, Future] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, node: GraphNode) -> Optional[float]:
        entry = self._entries.get(node)
        if entry is not None and entry.done():
            return entry.result()

        with self._lock:
            entry = self._entries.get(node)
            owner = entry is None
            if owner:
                entry = Future()
                self._entries[node] = entry

        if not owner:
            return entry.result()

        try:
            value = self._resolver(node)
        except Exception as e:
            entry.set_exception(e)
            raise
        entry.set_result(value)
        return value


@dataclass
class _Anchor:
    coordinate: Coordinate
    position: tuple[float, float]
    corners: tuple[GraphNode, ...] = field(default_factory=tuple)


class TerrainGraph:
    """Lazily generated 2D grid graph with terrain-aware edge costs.

    Register every waypoint with add_waypoint() before searching; after that
    the graph can be shared by concurrent searches (only the elevation memo
    mutates, and it is thread-safe).

    Example:
        graph = TerrainGraph(dem=dem, frame=frame, barriers=index, cost_model=PaceTableCostModel())
        source = graph.add_waypoint(start)
        for neighbor, cost in graph.neighbors(source):
            ...
    """

    def __init__(
        self,
        dem: ElevationProvider,
        frame: LocalFrame,
        barriers: BarrierIndex,
        cost_model: CostModel,
        resolution_m: float = GridConfig.RESOLUTION_M,
        connectivity: int = GridConfig.CONNECTIVITY,
        extent: Optional[Extent] = None,
        snap_tolerance_m: float = GridConfig.SNAP_TOLERANCE_M,
        max_steepness: Optional[float] = GridConfig.MAX_STEEPNESS,
    ) -> None:
        if not resolution_m > 0:
            raise ConfigurationError(f"Grid resolution must be positive, got {resolution_m}")
        if connectivity not in GridConfig.NEIGHBORS:
            raise ConfigurationError(f"Connectivity must be one of {sorted(GridConfig.NEIGHBORS)}, got {connectivity}")
        if max_steepness is not None and not max_steepness > 0:
            raise ConfigurationError(f"Steepness limit must be positive, got {max_steepness}")

        self.dem = dem
        self.frame = frame
        self.barriers = barriers
        self.cost_model = cost_model
        self.resolution_m = resolution_m
        self.connectivity = connectivity
        self.extent = extent
        self.snap_tolerance_m = snap_tolerance_m
        self.max_steepness = max_steepness
        self._offsets = GridConfig.NEIGHBORS[connectivity]

        self._memo = ElevationMemo(resolver=self._resolve_elevation)
        self._register_lock = threading.Lock()
        self._anchors: list[_Anchor] = []
        self._anchor_by_position: dict[tuple[float, float], GraphNode] = {}
        self._corner_anchors: dict[GraphNode, list[GraphNode]] = {}
        self._pinned: dict[GraphNode, Coordinate] = {}

    # =========================================================================
    # Waypoints
    # =========================================================================

    def add_waypoint(self, coordinate: Coordinate, index: Optional[int] = None) -> GraphNode:
        """Quantize a waypoint into the graph and return its node.

        A waypoint within the snap tolerance of a lattice point becomes that
        lattice node; any other waypoint becomes an anchor node. Registering
        the same location twice returns the same node.

        Args:
            coordinate: Waypoint location
            index: Waypoint number, reported in CoverageError

        Raises:
            CoverageError: If the waypoint has no elevation data.
        """
        x, y = self.frame.to_xy(lon=coordinate.lon, lat=coordinate.lat)
        col, row = round(x / self.resolution_m), round(y / self.resolution_m)
        location = Coordinate(lat=coordinate.lat, lon=coordinate.lon)

        with self._register_lock:
            if (
                abs(x - col * self.resolution_m) <= self.snap_tolerance_m
                and abs(y - row * self.resolution_m) <= self.snap_tolerance_m
            ):
                node = GraphNode(col=col, row=row)
                self._pinned.setdefault(node, location)
            else:
                node = self._anchor_by_position.get((x, y))
                if node is None:
                    node = self._add_anchor(location=location, position=(x, y))

        if self.elevation(node) is None:
            raise CoverageError(coordinate=coordinate, waypoint_index=index)
        return node

    def _add_anchor(self, location: Coordinate, position: tuple[float, float]) -> GraphNode:
        col = floor(position[0] / self.resolution_m)
        row = floor(position[1] / self.resolution_m)
        node = GraphNode(col=col, row=row, anchor=len(self._anchors))
        corners = (
            GraphNode(col=col, row=row),
            GraphNode(col=col + 1, row=row),
            GraphNode(col=col, row=row + 1),
            GraphNode(col=col + 1, row=row + 1),
        )
        self._anchors.append(_Anchor(coordinate=location, position=position, corners=corners))
        self._anchor_by_position[position] = node
        for corner in corners:
            self._corner_anchors.setdefault(corner, []).append(node)
        logger.debug(f"Anchor {node} for {location}")
        return node

    # =========================================================================
    # Node geometry
    # =========================================================================

    def position(self, node: GraphNode) -> tuple[float, float]:
        """Frame position (meters) of a node."""
        if node.is_anchor:
            return self._anchors[node.anchor].position
        return node.col * self.resolution_m, node.row * self.resolution_m

    def _location(self, node: GraphNode) -> Coordinate:
        if node.is_anchor:
            return self._anchors[node.anchor].coordinate
        pinned = self._pinned.get(node)
        if pinned is not None:
            return pinned
        x, y = self.position(node)
        lon, lat = self.frame.to_lon_lat(x=x, y=y)
        return Coordinate(lat=lat, lon=lon)

    def coordinate(self, node: GraphNode) -> Coordinate:
        """Geographic coordinate of a node, annotated with its elevation."""
        return self._location(node).with_elevation(self.elevation(node))

    def _resolve_elevation(self, node: GraphNode) -> Optional[float]:
        location = self._location(node)
        return self.dem.get_elevation(lon=location.lon, lat=location.lat)

    def elevation(self, node: GraphNode) -> Optional[float]:
        """Memoized elevation of a node, None if outside covered data."""
        return self._memo.get(node)

    def horizontal_distance(self, a: GraphNode, b: GraphNode) -> float:
        """Horizontal distance between two nodes in frame meters."""
        if not a.is_anchor and not b.is_anchor:
            return self.resolution_m * hypot(b.col - a.col, b.row - a.row)
        ax, ay = self.position(a)
        bx, by = self.position(b)
        return hypot(bx - ax, by - ay)

    # =========================================================================
    # Edges
    # =========================================================================

    def _candidates(self, node: GraphNode) -> Sequence[GraphNode]:
        if node.is_anchor:
            return self._anchors[node.anchor].corners
        lattice = [GraphNode(col=node.col + dc, row=node.row + dr) for dc, dr in self._offsets]
        return lattice + self._corner_anchors.get(node, [])

    def _admits(self, node: GraphNode, area: Optional[SearchArea]) -> bool:
        if node.is_anchor or node in self._pinned or node in self._corner_anchors:
            return True
        x, y = self.position(node)
        if self.extent is not None and not self.extent.contains(x, y):
            return False
        return area is None or area.contains(x, y)

    def _too_steep(self, a: GraphNode, b: GraphNode, distance: float, delta: float) -> bool:
        # Anchor links are shorter than a grid step and only follow DEM cell edges
        if self.max_steepness is None or a.is_anchor or b.is_anchor:
            return False
        return abs(delta) > self.max_steepness * distance

    def neighbors(self, node: GraphNode, area: Optional[SearchArea] = None) -> list[tuple[GraphNode, float]]:
        """Generate the outgoing edges of a node.

        Args:
            node: Node being expanded
            area: Optional restriction on which lattice nodes may be visited

        Returns:
            (neighbor, cost) pairs in a fixed, deterministic order.
        """
        source_elevation = self.elevation(node)
        if source_elevation is None:
            return []
        source_position = self.position(node)

        edges = []
        for candidate in self._candidates(node):
            if not self._admits(candidate, area):
                continue
            elevation = self.elevation(candidate)
            if elevation is None:
                continue
            distance = self.horizontal_distance(node, candidate)
            delta = elevation - source_elevation
            if self._too_steep(node, candidate, distance, delta):
                continue
            if self.barriers.blocks_xy(source_position, self.position(candidate)):
                continue
            cost = self.cost_model.cost(horizontal_distance=distance, elevation_delta=delta)
            edges.append((candidate, cost))
        return edges

    def edge_cost(self, a: GraphNode, b: GraphNode) -> float:
        """Cost of moving from a to b, recomputed from elevations."""
        elevation_a = self.elevation(a)
        elevation_b = self.elevation(b)
        if elevation_a is None or elevation_b is None:
            raise ValueError(f"Edge {a} -> {b} touches a node without elevation")
        return self.cost_model.cost(
            horizontal_distance=self.horizontal_distance(a, b),
            elevation_delta=elevation_b - elevation_a,
        )

    @property
    def num_nodes(self) -> int:
        """Number of nodes whose elevation has been looked up."""
        return len(self._memo)

    def __repr__(self) -> str:
        return (
            f"TerrainGraph({self.resolution_m}m, {self.connectivity}-connected, "
            f"{self.num_nodes} nodes, {len(self._anchors)} anchors)"
        )
