"""Route Composer - Multi-waypoint track planning.

Turns an ordered list of waypoints into one continuous Track:

1. Build a LocalFrame at the first waypoint and index the barriers in it
2. Build a TerrainGraph (and a finer one when refinement is enabled) over the
   bounding extent of all waypoints
3. Register every waypoint as a graph node (CoverageError names the index)
4. Search each consecutive pair independently, optionally in parallel
5. Concatenate the fragments, storing each shared waypoint once

Refinement: the coarse route of a pair is buffered into a corridor and the
pair is searched again on the finer grid, restricted to that corridor. If the
corridor search fails the coarse route is kept.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from skitrack_planner.constants import CostConfig, GridConfig, SearchConfig, TrackConfig
from skitrack_planner.core.barrier_index import BarrierIndex
from skitrack_planner.core.cost_model import CostModel, cost_model_for
from skitrack_planner.core.dem_service import ElevationProvider
from skitrack_planner.core.errors import ConfigurationError, UnreachableError
from skitrack_planner.core.geo_calculator import LocalFrame
from skitrack_planner.core.path_planner import PathPlanner, SearchResult
from skitrack_planner.core.search_area import CorridorArea, EllipseArea, SearchArea
from skitrack_planner.core.terrain_graph import Extent, GraphNode, TerrainGraph
from skitrack_planner.model.barrier import BarrierSegment
from skitrack_planner.model.coordinate import Coordinate
from skitrack_planner.model.route_request import RouteRequest
from skitrack_planner.model.track import Track

logger = logging.getLogger(__name__)


class RouteComposer:
    """Plans a track through all waypoints on one elevation provider.

    A composer holds configuration only; every compose() call builds its own
    graphs, so a composer can be reused for many requests.

    Example:
        composer = RouteComposer(elevation_provider=DEMService(), resolution_m=25)
        track = composer.compose(waypoints=[start, via, end], barriers=fences)
        print(track.summary())
    """

    def __init__(
        self,
        elevation_provider: ElevationProvider,
        cost_model: Optional[CostModel] = None,
        resolution_m: float = GridConfig.RESOLUTION_M,
        connectivity: int = GridConfig.CONNECTIVITY,
        max_expansions: int = SearchConfig.MAX_EXPANSIONS,
        refine_resolution_m: Optional[float] = None,
        corridor_width_m: float = SearchConfig.CORRIDOR_WIDTH_M,
        covering_length: Optional[float] = None,
        covering_width: Optional[float] = None,
        max_workers: int = SearchConfig.WORKERS,
        snap_tolerance_m: float = GridConfig.SNAP_TOLERANCE_M,
        max_steepness: Optional[float] = GridConfig.MAX_STEEPNESS,
    ) -> None:
        if max_workers < 1:
            raise ConfigurationError(f"max_workers must be positive, got {max_workers}")
        if refine_resolution_m is not None and not 0 < refine_resolution_m < resolution_m:
            raise ConfigurationError(
                f"Refinement resolution must be in (0, {resolution_m}), got {refine_resolution_m}"
            )
        if (covering_length is None) != (covering_width is None):
            raise ConfigurationError("covering_length and covering_width must be given together")
        if max_steepness is not None and not max_steepness > 0:
            raise ConfigurationError(f"max_steepness must be positive, got {max_steepness}")

        self.elevation_provider = elevation_provider
        self.cost_model = cost_model if cost_model is not None else cost_model_for(profile=CostConfig.DEFAULT_PROFILE)
        self.resolution_m = resolution_m
        self.connectivity = connectivity
        self.max_expansions = max_expansions
        self.refine_resolution_m = refine_resolution_m
        self.corridor_width_m = corridor_width_m
        self.covering_length = covering_length
        self.covering_width = covering_width
        self.max_workers = max_workers
        self.snap_tolerance_m = snap_tolerance_m
        self.max_steepness = max_steepness

    @classmethod
    def from_request(cls, request: RouteRequest, elevation_provider: ElevationProvider) -> "RouteComposer":
        """Configure a composer from a parsed request."""
        return cls(
            elevation_provider=elevation_provider,
            cost_model=cost_model_for(profile=request.cost_profile),
            resolution_m=request.resolution_m,
            connectivity=request.connectivity,
            max_expansions=request.max_expansions,
            refine_resolution_m=request.refine_resolution_m,
            corridor_width_m=request.corridor_width_m,
            covering_length=request.covering_length,
            covering_width=request.covering_width,
            max_workers=request.workers,
            max_steepness=request.max_steepness,
        )

    def _build_graph(self, frame: LocalFrame, barriers: BarrierIndex, extent: Extent, resolution_m: float) -> TerrainGraph:
        return TerrainGraph(
            dem=self.elevation_provider,
            frame=frame,
            barriers=barriers,
            cost_model=self.cost_model,
            resolution_m=resolution_m,
            connectivity=self.connectivity,
            extent=extent,
            snap_tolerance_m=self.snap_tolerance_m,
            max_steepness=self.max_steepness,
        )

    def compose(
        self,
        waypoints: Sequence[Coordinate],
        barriers: Sequence[BarrierSegment] = (),
        name: str = TrackConfig.DEFAULT_NAME,
    ) -> Track:
        """Compute the cheapest track visiting all waypoints in order.

        Args:
            waypoints: Start, intermediate waypoints and destination
            barriers: Segments no track segment may cross
            name: Name given to the resulting track

        Returns:
            Track starting exactly at the first and ending exactly at the last
            waypoint, passing through every intermediate waypoint.

        Raises:
            ConfigurationError: Fewer than two waypoints.
            CoverageError: A waypoint has no elevation data.
            UnreachableError: A waypoint pair cannot be connected (lowest failing pair).
        """
        if len(waypoints) < 2:
            raise ConfigurationError(f"At least a start and an end point are required, got {len(waypoints)}")

        first = waypoints[0]
        frame = LocalFrame(origin_lon=first.lon, origin_lat=first.lat)
        barrier_index = BarrierIndex(frame=frame, segments=barriers)
        extent = Extent.around(points=[frame.to_xy(lon=p.lon, lat=p.lat) for p in waypoints])

        coarse = self._build_graph(frame, barrier_index, extent, self.resolution_m)
        coarse_nodes = [coarse.add_waypoint(p, index=i) for i, p in enumerate(waypoints)]
        fine: Optional[TerrainGraph] = None
        fine_nodes: list[GraphNode] = []
        if self.refine_resolution_m is not None:
            fine = self._build_graph(frame, barrier_index, extent, self.refine_resolution_m)
            fine_nodes = [fine.add_waypoint(p, index=i) for i, p in enumerate(waypoints)]

        logger.info(f"Planning {len(waypoints) - 1} segment(s) on {coarse}, {len(barrier_index)} barrier segments")

        def plan_segment(i: int) -> tuple[list[Coordinate], float]:
            return self._plan_segment(
                index=i,
                coarse=coarse,
                source=coarse_nodes[i],
                target=coarse_nodes[i + 1],
                fine=fine,
                fine_pair=(fine_nodes[i], fine_nodes[i + 1]) if fine is not None else None,
            )

        segment_indices = range(len(waypoints) - 1)
        if self.max_workers > 1 and len(segment_indices) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [executor.submit(plan_segment, i) for i in segment_indices]
                # Waiting in index order surfaces the lowest failing segment
                fragments = [future.result() for future in futures]
        else:
            fragments = [plan_segment(i) for i in segment_indices]

        track = Track(name=name)
        for points, cost in fragments:
            track.append(fragment=points, cost=cost)

        logger.info(f"Graph usage: coarse {coarse.num_nodes} nodes" + (f", fine {fine.num_nodes} nodes" if fine else ""))
        logger.info(track.summary())
        return track

    def _plan_segment(
        self,
        index: int,
        coarse: TerrainGraph,
        source: GraphNode,
        target: GraphNode,
        fine: Optional[TerrainGraph],
        fine_pair: Optional[tuple[GraphNode, GraphNode]],
    ) -> tuple[list[Coordinate], float]:
        """Route one waypoint pair, returning its coordinates and cost."""
        area: Optional[SearchArea] = None
        if self.covering_length is not None and self.covering_width is not None:
            area = EllipseArea(
                a=coarse.position(source),
                b=coarse.position(target),
                covering_length=self.covering_length,
                covering_width=self.covering_width,
            )

        try:
            result = PathPlanner(graph=coarse, max_expansions=self.max_expansions).shortest_path(
                source=source, target=target, area=area
            )
        except UnreachableError as e:
            raise UnreachableError(reason=e.reason, segment_index=index, expanded=e.expanded) from e
        logger.info(f"Segment {index}: {len(result.nodes)} nodes, cost {result.total_cost:.1f}s, {result.expanded} expanded")

        if fine is None or fine_pair is None:
            return [coarse.coordinate(n) for n in result.nodes], result.total_cost

        refined = self._refine(index=index, coarse=coarse, coarse_result=result, fine=fine, fine_pair=fine_pair)
        if refined is None:
            return [coarse.coordinate(n) for n in result.nodes], result.total_cost
        return [fine.coordinate(n) for n in refined.nodes], refined.total_cost

    def _refine(
        self,
        index: int,
        coarse: TerrainGraph,
        coarse_result: SearchResult,
        fine: TerrainGraph,
        fine_pair: tuple[GraphNode, GraphNode],
    ) -> Optional[SearchResult]:
        corridor = CorridorArea(
            points=[coarse.position(n) for n in coarse_result.nodes],
            half_width=self.corridor_width_m,
        )
        try:
            result = PathPlanner(graph=fine, max_expansions=self.max_expansions).shortest_path(
                source=fine_pair[0], target=fine_pair[1], area=corridor
            )
        except UnreachableError as e:
            logger.warning(f"Segment {index}: refinement failed ({e.reason}), keeping coarse route")
            return None
        logger.info(f"Segment {index} refined: {len(result.nodes)} nodes, cost {result.total_cost:.1f}s")
        return result


def plan_route(request: RouteRequest, elevation_provider: ElevationProvider) -> Track:
    """Plan the track described by a request."""
    composer = RouteComposer.from_request(request=request, elevation_provider=elevation_provider)
    return composer.compose(waypoints=request.waypoints, barriers=request.barriers, name=request.track_name)
