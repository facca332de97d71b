"""Traversal cost models (trip profiles).

A cost model turns one graph edge - horizontal distance plus signed elevation
delta - into an estimated traversal time in seconds. The search core only
relies on the contract below, so profiles can be swapped freely:

- cost is finite and >= 0 for every legal input
- for a fixed distance, cost never decreases as |elevation delta| grows
- climbing costs at least as much as descending the same delta
- zero distance with a nonzero delta is a GeometryError, never NaN

Profiles:
    PaceTableCostModel: Piecewise-linear pace curve (default: skiing table)
    LinearClimbCostModel: Flat pace plus a linear climbing penalty
"""

import math
from abc import ABC, abstractmethod
from bisect import bisect_right
from typing import Sequence

from skitrack_planner.constants import CostConfig
from skitrack_planner.core.errors import ConfigurationError, GeometryError


class CostModel(ABC):
    """Abstract base class for traversal cost strategies.

    Subclasses implement pace(); cost() validates the geometry and scales the
    pace by distance.
    """

    name = "abstract"

    @abstractmethod
    def pace(self, steepness: float) -> float:
        """Seconds per horizontal meter at the given steepness (rise / run)."""

    def cost(self, horizontal_distance: float, elevation_delta: float) -> float:
        """Estimated seconds to traverse a segment.

        Args:
            horizontal_distance: Horizontal length in meters (> 0)
            elevation_delta: Target elevation minus source elevation in meters

        Returns:
            Non-negative finite traversal time in seconds.

        Raises:
            GeometryError: If the inputs describe a degenerate segment.
        """
        if not (math.isfinite(horizontal_distance) and math.isfinite(elevation_delta)):
            raise GeometryError(f"Non-finite edge geometry: distance={horizontal_distance}, delta={elevation_delta}")
        if horizontal_distance < 0:
            raise GeometryError(f"Negative horizontal distance {horizontal_distance}")
        if horizontal_distance == 0:
            if elevation_delta != 0:
                raise GeometryError(f"Zero horizontal distance with elevation delta {elevation_delta:+.2f}m")
            return 0.0
        return horizontal_distance * self.pace(elevation_delta / horizontal_distance)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PaceTableCostModel(CostModel):
    """Pace curve given by (steepness, seconds per meter) breakpoints.

    Values between breakpoints are interpolated linearly, values outside the
    table extrapolate the first/last segment. The table is checked against the
    cost contract on construction.

    Example:
        model = PaceTableCostModel()
        model.cost(horizontal_distance=100.0, elevation_delta=20.0)  # ~176 s
    """

    name = "ski"

    def __init__(self, table: Sequence[tuple[float, float]] = CostConfig.PACE_TABLE) -> None:
        if len(table) < 2:
            raise ConfigurationError("Pace table needs at least two breakpoints")
        points = sorted((float(s), float(p)) for s, p in table)
        self._steepness = [s for s, _ in points]
        self._pace = [p for _, p in points]
        if len(set(self._steepness)) != len(self._steepness):
            raise ConfigurationError("Pace table has duplicate steepness breakpoints")
        if self._steepness[0] >= 0 or self._steepness[-1] <= 0:
            raise ConfigurationError("Pace table must cover both descent and ascent")
        self._validate()

    def _validate(self) -> None:
        # Both branches are linear between the mirrored breakpoints, so checking
        # those points (plus the extrapolation slopes) covers the whole curve.
        magnitudes = sorted({0.0} | {abs(s) for s in self._steepness})
        previous_up = previous_down = None
        for magnitude in magnitudes:
            up = self.pace(magnitude)
            down = self.pace(-magnitude)
            if up <= 0 or down <= 0:
                raise ConfigurationError(f"Pace must be positive (steepness ±{magnitude})")
            if up < down:
                raise ConfigurationError(f"Climbing is cheaper than descending at steepness {magnitude}")
            if previous_up is not None and (up < previous_up or down < previous_down):
                raise ConfigurationError(f"Pace decreases with steepness at ±{magnitude}")
            previous_up, previous_down = up, down
        if self._slope(len(self._steepness) - 2) < 0 or self._slope(0) > 0:
            raise ConfigurationError("Pace table extrapolates to decreasing pace")
        if self._slope(len(self._steepness) - 2) < -self._slope(0):
            raise ConfigurationError("Pace table extrapolates to cheaper climbing than descending")

    def _slope(self, i: int) -> float:
        return (self._pace[i + 1] - self._pace[i]) / (self._steepness[i + 1] - self._steepness[i])

    def pace(self, steepness: float) -> float:
        i = bisect_right(self._steepness, steepness) - 1
        i = min(max(i, 0), len(self._steepness) - 2)
        return self._pace[i] + self._slope(i) * (steepness - self._steepness[i])

    def __repr__(self) -> str:
        return f"PaceTableCostModel({len(self._steepness)} breakpoints)"


class LinearClimbCostModel(CostModel):
    """Constant pace plus a linear penalty on ascent, descents cost flat pace.

    pace(s) = base_pace + climb_pace * max(s, 0)
    """

    name = "linear"

    def __init__(
        self,
        base_pace: float = CostConfig.LINEAR_BASE_PACE,
        climb_pace: float = CostConfig.LINEAR_CLIMB_PACE,
    ) -> None:
        if base_pace <= 0 or climb_pace < 0:
            raise ConfigurationError(f"Invalid linear profile: base={base_pace}, climb={climb_pace}")
        self.base_pace = base_pace
        self.climb_pace = climb_pace

    def pace(self, steepness: float) -> float:
        return self.base_pace + self.climb_pace * max(steepness, 0.0)

    def __repr__(self) -> str:
        return f"LinearClimbCostModel(base={self.base_pace}, climb={self.climb_pace})"


COST_PROFILES: dict[str, type[CostModel]] = {
    PaceTableCostModel.name: PaceTableCostModel,
    LinearClimbCostModel.name: LinearClimbCostModel,
}


def cost_model_for(profile: str) -> CostModel:
    """Instantiate a registered cost profile by name.

    Raises:
        ConfigurationError: If the profile is unknown.
    """
    try:
        return COST_PROFILES[profile]()
    except KeyError:
        raise ConfigurationError(f"Unknown cost profile '{profile}', expected one of {sorted(COST_PROFILES)}") from None
