"""Configuration constants for Ski Track Planner.

All tunable parameters are centralized here. Request files can override the
per-route values (resolution, connectivity, search bounds, cost profile).

Classes:
    DEMConfig: Elevation data file paths
    GridConfig: Terrain grid quantization and extent
    SearchConfig: Shortest-path search bounds and refinement corridor
    CostConfig: Traversal cost curves (trip profiles)
    TrackConfig: Output track defaults
"""

from pathlib import Path

# Package root directory (where skitrack_planner/ lives)
PACKAGE_DIR = Path(__file__).parent

# Project root directory (parent of skitrack_planner/)
PROJECT_ROOT = PACKAGE_DIR.parent

# Data directory outside package (elevation tiles are not shipped with the package)
DATA_DIR = PROJECT_ROOT / "data"


class DEMConfig:
    """Elevation data file paths."""

    # Default GeoTIFF used by the command line when --dem is not given
    DEM_PATH = DATA_DIR / "dem.tif"

    # CRS of request coordinates
    WGS84 = "EPSG:4326"


class GridConfig:
    """Terrain grid quantization parameters."""

    # Grid spacing in meters (coarse pass)
    RESOLUTION_M = 25.0

    # Neighbor pattern: 4 (rook), 8 (king) or 16 (king + knight moves)
    CONNECTIVITY = 8
    NEIGHBORS = {
        4: ((1, 0), (0, 1), (-1, 0), (0, -1)),
        8: ((1, 0), (1, 1), (0, 1), (-1, 1), (-1, 0), (-1, -1), (0, -1), (1, -1)),
        16: (
            (1, 0), (2, 1), (1, 1), (1, 2), (0, 1), (-1, 2), (-1, 1), (-2, 1),
            (-1, 0), (-2, -1), (-1, -1), (-1, -2), (0, -1), (1, -2), (1, -1), (2, -1),
        ),
    }

    # A waypoint closer than this to a lattice point is quantized onto it
    SNAP_TOLERANCE_M = 0.001

    # Bounding extent = waypoint bounding box grown by max(MIN_MARGIN, FACTOR * span)
    EXTENT_MARGIN_FACTOR = 0.5
    MIN_EXTENT_MARGIN_M = 500.0

    # Lattice edges steeper than this (rise / run, 1.0 = 45 deg) are not generated
    MAX_STEEPNESS = 1.0


assert GridConfig.CONNECTIVITY in GridConfig.NEIGHBORS
assert all(len(offsets) == n for n, offsets in GridConfig.NEIGHBORS.items())


class SearchConfig:
    """Shortest-path search parameters."""

    # Maximum number of settled nodes per search before giving up
    MAX_EXPANSIONS = 1_000_000

    # Half-width of the corridor around the coarse route for the refinement pass
    CORRIDOR_WIDTH_M = 100.0

    # Worker threads for per-segment searches (1 = sequential)
    WORKERS = 1


class CostConfig:
    """Traversal cost curves.

    Costs are seconds. A pace curve maps steepness (elevation delta divided by
    horizontal distance, positive = uphill) to seconds per horizontal meter.
    """

    # Skiing trip profile: (steepness, seconds per meter) breakpoints, linearly
    # interpolated and extrapolated. Descents never go faster than flat
    # terrain so cost grows with |elevation delta| in both directions.
    PACE_TABLE = (
        (-2.0, 40.0),  # -63 deg
        (-1.0, 15.0),  # -45 deg
        (-0.83, 3.0),  # -40 deg
        (-0.58, 1.2),  # -30 deg
        (0.0, 1.2),
        (0.18, 1.7),  # 10 deg
        (0.36, 2.5),  # 20 deg
        (0.58, 4.0),  # 30 deg
        (0.83, 10.0),  # 40 deg
        (1.0, 60.0),  # 45 deg
        (2.0, 600.0),  # 63 deg
    )

    # Linear climbing profile: pace = BASE + CLIMB * max(steepness, 0)
    # (1 s per meter on the flat, plus 20 s per meter of ascent)
    LINEAR_BASE_PACE = 1.0
    LINEAR_CLIMB_PACE = 20.0

    DEFAULT_PROFILE = "ski"


class TrackConfig:
    """Output track defaults."""

    DEFAULT_NAME = "Ski track"
    GPX_CREATOR = "Ski Track Planner"
    GPX_NAMESPACE = "http://www.topografix.com/GPX/1/1"
