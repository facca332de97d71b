"""Core foundation classes for terrain routing.

- GeoCalculator / LocalFrame: geodesic distances and the metric planning frame
- DEMService: Digital Elevation Model access behind the ElevationProvider protocol
- CostModel: traversal cost strategies (trip profiles)
- EllipseArea / CorridorArea: search-space restrictions
- Errors: the RoutingError hierarchy

The graph-level modules depend on the data model; import them directly:
    from skitrack_planner.core.barrier_index import BarrierIndex
    from skitrack_planner.core.terrain_graph import TerrainGraph
    from skitrack_planner.core.path_planner import PathPlanner
"""

from skitrack_planner.core.cost_model import (
    COST_PROFILES,
    CostModel,
    LinearClimbCostModel,
    PaceTableCostModel,
    cost_model_for,
)
from skitrack_planner.core.dem_service import DEMService, ElevationProvider
from skitrack_planner.core.errors import (
    ConfigurationError,
    CoverageError,
    GeometryError,
    RoutingError,
    UnreachableError,
)
from skitrack_planner.core.geo_calculator import GeoCalculator, LocalFrame
from skitrack_planner.core.search_area import CorridorArea, EllipseArea, SearchArea

__all__ = [
    # Geo calculator
    "GeoCalculator",
    "LocalFrame",
    # DEM service
    "DEMService",
    "ElevationProvider",
    # Cost models
    "CostModel",
    "PaceTableCostModel",
    "LinearClimbCostModel",
    "COST_PROFILES",
    "cost_model_for",
    # Search areas
    "SearchArea",
    "EllipseArea",
    "CorridorArea",
    # Errors
    "RoutingError",
    "ConfigurationError",
    "CoverageError",
    "UnreachableError",
    "GeometryError",
]
