"""RouteRequest - Validated routing input.

Parsed from a JSON request file:

    {
        "start": {"lat": 61.50, "lon": 8.90},
        "waypoints": [[61.51, 8.93]],
        "end": {"lat": 61.52, "lon": 8.95},
        "barriers": [[[61.505, 8.91], [61.505, 8.92], [61.508, 8.92]]],
        "resolution": 25
    }

`points` (full ordered list) may replace start/waypoints/end. All tuning
fields are optional and default to the values in constants.py.
The legacy two-pass parameter-file names (`grid_size_pass1`,
`grid_size_pass2`, `path_width_pass2`, `output_fname`) are read as aliases.
Any other unknown field is rejected.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from skitrack_planner.constants import CostConfig, GridConfig, SearchConfig, TrackConfig
from skitrack_planner.core.cost_model import COST_PROFILES
from skitrack_planner.core.errors import ConfigurationError
from skitrack_planner.model.barrier import BarrierSegment
from skitrack_planner.model.coordinate import Coordinate

logger = logging.getLogger(__name__)

FIELDS = frozenset(
    {
        "start",
        "waypoints",
        "end",
        "points",
        "barriers",
        "resolution",
        "refine_resolution",
        "corridor_width",
        "covering_length",
        "covering_width",
        "connectivity",
        "max_expansions",
        "max_steepness",
        "cost_profile",
        "workers",
        "track_name",
        "output",
    }
)

# Legacy parameter-file names -> request field
ALIASES = {
    "grid_size_pass1": "resolution",
    "grid_size_pass2": "refine_resolution",
    "path_width_pass2": "corridor_width",
    "output_fname": "output",
}

# Legacy bookkeeping fields, accepted and ignored
IGNORED = frozenset({"params_fname"})


def _positive_float(data: dict[str, Any], key: str, default: Optional[float]) -> Optional[float]:
    value = data.get(key, default)
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Field '{key}' must be a number, got {value!r}") from None
    if not (math.isfinite(number) and number > 0):
        raise ConfigurationError(f"Field '{key}' must be positive, got {value!r}")
    return number


def _positive_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"Field '{key}' must be a positive integer, got {value!r}")
    return value


def _canonical_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Resolve aliases and drop ignored keys.

    Raises:
        ConfigurationError: On unknown fields or an alias given next to its field.
    """
    fields = {}
    for key, value in data.items():
        if key in IGNORED:
            continue
        name = ALIASES.get(key, key)
        if name not in FIELDS:
            raise ConfigurationError(f"Unknown field '{key}'")
        if name in fields:
            raise ConfigurationError(f"Field '{name}' given twice (as '{key}')")
        fields[name] = value
    return fields


@dataclass
class RouteRequest:
    """Everything needed to compute one track.

    Attributes:
        waypoints: Ordered points, first = start, last = destination
        barriers: Segments the track may not cross
        resolution_m: Coarse grid spacing in meters
        refine_resolution_m: Fine grid spacing for the corridor pass (None = single pass)
        corridor_width_m: Corridor half-width for the refinement pass
        covering_length / covering_width: Covering ellipse factors (None = no ellipse)
        connectivity: Grid neighbor pattern (4, 8 or 16)
        max_expansions: Node-expansion bound per search
        max_steepness: Steepest allowed lattice edge (rise / run, None = unlimited)
        cost_profile: Registered cost model name
        workers: Threads for per-segment searches
        track_name: Name of the output track
        output: Default output track file
    """

    waypoints: list[Coordinate]
    barriers: list[BarrierSegment] = field(default_factory=list)
    resolution_m: float = GridConfig.RESOLUTION_M
    refine_resolution_m: Optional[float] = None
    corridor_width_m: float = SearchConfig.CORRIDOR_WIDTH_M
    covering_length: Optional[float] = None
    covering_width: Optional[float] = None
    connectivity: int = GridConfig.CONNECTIVITY
    max_expansions: int = SearchConfig.MAX_EXPANSIONS
    max_steepness: Optional[float] = GridConfig.MAX_STEEPNESS
    cost_profile: str = CostConfig.DEFAULT_PROFILE
    workers: int = SearchConfig.WORKERS
    track_name: str = TrackConfig.DEFAULT_NAME
    output: Optional[str] = None

    def __post_init__(self) -> None:
        """Cross-field validation."""
        if len(self.waypoints) < 2:
            raise ConfigurationError(f"At least a start and an end point are required, got {len(self.waypoints)}")
        if self.connectivity not in GridConfig.NEIGHBORS:
            raise ConfigurationError(f"Field 'connectivity' must be one of {sorted(GridConfig.NEIGHBORS)}")
        if self.cost_profile not in COST_PROFILES:
            raise ConfigurationError(f"Field 'cost_profile' must be one of {sorted(COST_PROFILES)}")
        if (self.covering_length is None) != (self.covering_width is None):
            raise ConfigurationError("Fields 'covering_length' and 'covering_width' must be given together")
        if self.refine_resolution_m is not None and self.refine_resolution_m >= self.resolution_m:
            raise ConfigurationError("Field 'refine_resolution' must be finer than 'resolution'")

    @property
    def start(self) -> Coordinate:
        return self.waypoints[0]

    @property
    def end(self) -> Coordinate:
        return self.waypoints[-1]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RouteRequest":
        """Create a request from parsed JSON.

        Raises:
            ConfigurationError: On missing or malformed fields.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Request must be a JSON object, got {type(data).__name__}")
        data = _canonical_fields(data)

        if "points" in data:
            if any(key in data for key in ("start", "waypoints", "end")):
                raise ConfigurationError("Use either 'points' or 'start'/'waypoints'/'end', not both")
            raw_points = data["points"]
            if not isinstance(raw_points, list):
                raise ConfigurationError("Field 'points' must be a list")
        else:
            for key in ("start", "end"):
                if key not in data:
                    raise ConfigurationError(f"Missing required field '{key}'")
            middle = data.get("waypoints", [])
            if not isinstance(middle, list):
                raise ConfigurationError("Field 'waypoints' must be a list")
            raw_points = [data["start"], *middle, data["end"]]

        raw_barriers = data.get("barriers", [])
        if not isinstance(raw_barriers, list):
            raise ConfigurationError("Field 'barriers' must be a list")
        barriers = [segment for entry in raw_barriers for segment in BarrierSegment.parse_polyline(entry)]

        return cls(
            waypoints=[Coordinate.parse(p) for p in raw_points],
            barriers=barriers,
            resolution_m=_positive_float(data, "resolution", GridConfig.RESOLUTION_M),
            refine_resolution_m=_positive_float(data, "refine_resolution", None),
            corridor_width_m=_positive_float(data, "corridor_width", SearchConfig.CORRIDOR_WIDTH_M),
            covering_length=_positive_float(data, "covering_length", None),
            covering_width=_positive_float(data, "covering_width", None),
            connectivity=_positive_int(data, "connectivity", GridConfig.CONNECTIVITY),
            max_expansions=_positive_int(data, "max_expansions", SearchConfig.MAX_EXPANSIONS),
            max_steepness=_positive_float(data, "max_steepness", GridConfig.MAX_STEEPNESS),
            cost_profile=str(data.get("cost_profile", CostConfig.DEFAULT_PROFILE)),
            workers=_positive_int(data, "workers", SearchConfig.WORKERS),
            track_name=str(data.get("track_name", TrackConfig.DEFAULT_NAME)),
            output=data.get("output"),
        )

    @classmethod
    def from_file(cls, path: Path) -> "RouteRequest":
        """Read a JSON request file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Request file {path} is not valid JSON: {e}") from e
        logger.info(f"Read request {path}")
        return cls.from_dict(data=data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the request-file layout."""
        data: dict[str, Any] = {
            "start": self.start.to_dict(),
            "waypoints": [p.to_dict() for p in self.waypoints[1:-1]],
            "end": self.end.to_dict(),
            "barriers": [b.to_list() for b in self.barriers],
            "resolution": self.resolution_m,
            "corridor_width": self.corridor_width_m,
            "connectivity": self.connectivity,
            "max_expansions": self.max_expansions,
            "max_steepness": self.max_steepness,
            "cost_profile": self.cost_profile,
            "workers": self.workers,
            "track_name": self.track_name,
        }
        optional = {
            "refine_resolution": self.refine_resolution_m,
            "covering_length": self.covering_length,
            "covering_width": self.covering_width,
            "output": self.output,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data

    def write(self, path: Path) -> None:
        """Write the request as JSON.

        Raises:
            ConfigurationError: If the filename does not end with .json.
        """
        if Path(path).suffix != ".json":
            raise ConfigurationError(f"Request filename must end with .json, got {path}")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Wrote request {path}")
