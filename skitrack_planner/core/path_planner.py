"""Path planner - Dijkstra search over the lazily generated terrain graph.

Label-setting shortest path with a binary heap:
1. Seed the heap with the source at cost 0
2. Pop the cheapest unsettled node and settle it (its cost is now final)
3. Relax the edges the TerrainGraph generates for it
4. Stop when the target is settled, or fail when the heap runs dry or the
   expansion bound is hit

Heap entries are (cost, node); GraphNode ordering breaks cost ties, and a
predecessor is only replaced by a strictly cheaper one, so repeated runs on
the same input return the same path.
"""

import heapq
import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from skitrack_planner.constants import SearchConfig
from skitrack_planner.core.errors import ConfigurationError, GeometryError, UnreachableError
from skitrack_planner.core.search_area import SearchArea
from skitrack_planner.core.terrain_graph import GraphNode, TerrainGraph

logger = logging.getLogger(__name__)


@dataclass
class SearchState:
    """Per-search labels: tentative costs, predecessors and settled nodes."""

    costs: dict[GraphNode, float] = field(default_factory=dict)
    previous: dict[GraphNode, GraphNode] = field(default_factory=dict)
    settled: set[GraphNode] = field(default_factory=set)

    def trace(self, target: GraphNode) -> list[GraphNode]:
        """Follow predecessor links back from target, returned in travel order."""
        nodes = [target]
        while nodes[-1] in self.previous:
            nodes.append(self.previous[nodes[-1]])
        nodes.reverse()
        return nodes


@dataclass(frozen=True)
class SearchResult:
    """Winning path of one search.

    Attributes:
        nodes: Nodes from source to target (inclusive)
        total_cost: Sum of edge costs along nodes
        expanded: Number of nodes settled during the search
    """

    nodes: list[GraphNode]
    total_cost: float
    expanded: int


class PathPlanner:
    """Shortest-path search between two nodes of a TerrainGraph.

    The planner holds no per-search state, so one instance can serve
    concurrent searches on the same graph.

    Example:
        planner = PathPlanner(graph=graph)
        result = planner.shortest_path(source=a, target=b)
        coordinates = [graph.coordinate(n) for n in result.nodes]
    """

    def __init__(self, graph: TerrainGraph, max_expansions: int = SearchConfig.MAX_EXPANSIONS) -> None:
        if max_expansions < 1:
            raise ConfigurationError(f"max_expansions must be positive, got {max_expansions}")
        self.graph = graph
        self.max_expansions = max_expansions

    def shortest_path(
        self,
        source: GraphNode,
        target: GraphNode,
        area: Optional[SearchArea] = None,
    ) -> SearchResult:
        """Find the cheapest path from source to target.

        Args:
            source: Start node (must have elevation)
            target: Destination node
            area: Optional restriction on visited lattice nodes

        Returns:
            SearchResult with the node sequence and its cost.

        Raises:
            UnreachableError: If target cannot be reached within the bound.
            GeometryError: If the graph produced an invalid edge cost.
        """
        if source == target:
            return SearchResult(nodes=[source], total_cost=0.0, expanded=0)

        state = SearchState()
        state.costs[source] = 0.0
        heap: list[tuple[float, GraphNode]] = [(0.0, source)]

        while heap:
            cost, node = heapq.heappop(heap)
            if node in state.settled:
                continue
            state.settled.add(node)

            if node == target:
                nodes = state.trace(target)
                logger.debug(f"Search {source} -> {target}: {len(nodes)} nodes, cost {cost:.1f}, {len(state.settled)} expanded")
                return SearchResult(nodes=nodes, total_cost=cost, expanded=len(state.settled))

            if len(state.settled) >= self.max_expansions:
                logger.warning(f"Search {source} -> {target} hit the expansion limit ({self.max_expansions})")
                raise UnreachableError(reason=UnreachableError.EXPANSION_LIMIT, expanded=len(state.settled))

            for neighbor, edge_cost in self.graph.neighbors(node, area=area):
                if not (edge_cost >= 0 and math.isfinite(edge_cost)):
                    raise GeometryError(f"Invalid edge cost {edge_cost} on {node} -> {neighbor}")
                if neighbor in state.settled:
                    continue
                new_cost = cost + edge_cost
                if new_cost < state.costs.get(neighbor, math.inf):
                    state.costs[neighbor] = new_cost
                    state.previous[neighbor] = node
                    heapq.heappush(heap, (new_cost, neighbor))

        logger.debug(f"Search {source} -> {target}: exhausted after {len(state.settled)} expansions")
        raise UnreachableError(reason=UnreachableError.DISCONNECTED, expanded=len(state.settled))
