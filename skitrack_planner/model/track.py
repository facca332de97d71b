"""Track - The composed route handed to the track exporter.

A Track is the ordered, elevation-annotated coordinate sequence from the first
to the last waypoint. Fragments from consecutive waypoint pairs are appended
with the shared junction point stored once.

Computed metrics (length, ascent, descent, estimated time) are derived from
the points on the fly. GPX 1.1 serialization is built in.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from skitrack_planner.constants import TrackConfig
from skitrack_planner.model.coordinate import Coordinate

logger = logging.getLogger(__name__)


def format_duration(seconds: float) -> str:
    """Format seconds as "1 hr 2 min 3 sec", dropping leading zero units."""
    t = int(seconds)
    if t >= 3600:
        return f"{t // 3600} hr {(t % 3600) // 60} min {t % 60} sec"
    if t >= 60:
        return f"{t // 60} min {t % 60} sec"
    return f"{t} sec"


@dataclass
class Track:
    """An ordered route through all waypoints.

    Attributes:
        points: Elevation-annotated coordinates in visiting order
        segment_costs: Cost (seconds) of each waypoint-pair fragment
        waypoint_indices: Index into points of every waypoint, first to last
        name: Track name used for export

    Computed Properties:
        total_cost: Sum of segment costs (estimated seconds)
        length_m: Sum of great-circle distances between consecutive points
        ascent_m / descent_m: Accumulated elevation gain / loss
    """

    points: list[Coordinate] = field(default_factory=list)
    segment_costs: list[float] = field(default_factory=list)
    waypoint_indices: list[int] = field(default_factory=list)
    name: str = TrackConfig.DEFAULT_NAME

    def append(self, fragment: Sequence[Coordinate], cost: float) -> None:
        """Append the route of the next waypoint pair.

        The fragment must start where the track currently ends; that junction
        point is kept once.

        Raises:
            ValueError: If the fragment is empty or does not connect.
        """
        if not fragment:
            raise ValueError("Cannot append an empty fragment")
        if not self.points:
            self.points.append(fragment[0])
            self.waypoint_indices.append(0)
        elif not self.points[-1].same_location(fragment[0]):
            raise ValueError(f"Fragment starts at {fragment[0]}, track ends at {self.points[-1]}")
        self.points.extend(fragment[1:])
        self.waypoint_indices.append(len(self.points) - 1)
        self.segment_costs.append(cost)

    @property
    def start(self) -> Optional[Coordinate]:
        """First point of the track."""
        return self.points[0] if self.points else None

    @property
    def end(self) -> Optional[Coordinate]:
        """Last point of the track."""
        return self.points[-1] if self.points else None

    @property
    def total_cost(self) -> float:
        """Estimated traversal time in seconds."""
        return sum(self.segment_costs)

    @property
    def length_m(self) -> float:
        """Total track length in meters (computed from point distances)."""
        if len(self.points) < 2:
            return 0.0
        return sum(self.points[i].distance_to(other=self.points[i + 1]) for i in range(len(self.points) - 1))

    def _elevation_steps(self) -> list[float]:
        elevations = [p.elevation for p in self.points if p.elevation is not None]
        return [elevations[i + 1] - elevations[i] for i in range(len(elevations) - 1)]

    @property
    def ascent_m(self) -> float:
        """Accumulated uphill meters. Downhill parts are not counted."""
        return sum(step for step in self._elevation_steps() if step > 0)

    @property
    def descent_m(self) -> float:
        """Accumulated downhill meters (positive number)."""
        return -sum(step for step in self._elevation_steps() if step < 0)

    def summary(self) -> str:
        """Multi-line human-readable summary."""
        if not self.points:
            return f"Track {self.name}: empty"
        return "\n".join(
            [
                f"Track: {self.name} ({len(self.points)} pts, {len(self.segment_costs)} segments)",
                f"Length: {self.length_m:.0f}m",
                f"Time: {format_duration(self.total_cost)}",
                f"Total elevation: {self.ascent_m:.0f}m",
                f"Total descent: {self.descent_m:.0f}m",
            ]
        )

    # =========================================================================
    # GPX
    # =========================================================================

    def to_gpx(self) -> str:
        """Export the track as a GPX 1.1 document with one track segment."""
        gpx_ns = TrackConfig.GPX_NAMESPACE
        ET.register_namespace("", gpx_ns)

        gpx = ET.Element("gpx", xmlns=gpx_ns, version="1.1", creator=TrackConfig.GPX_CREATOR)

        metadata = ET.SubElement(gpx, "metadata")
        ET.SubElement(metadata, "name").text = self.name
        ET.SubElement(metadata, "time").text = datetime.now().isoformat()

        trk = ET.SubElement(gpx, "trk")
        ET.SubElement(trk, "name").text = self.name
        ET.SubElement(trk, "desc").text = (
            f"Length {self.length_m:.0f}m - Ascent {self.ascent_m:.0f}m - Time {format_duration(self.total_cost)}"
        )

        trkseg = ET.SubElement(trk, "trkseg")
        for pt in self.points:
            trkpt = ET.SubElement(trkseg, "trkpt", lat=repr(pt.lat), lon=repr(pt.lon))
            if pt.elevation is not None:
                ET.SubElement(trkpt, "ele").text = f"{pt.elevation:.1f}"

        return ET.tostring(gpx, encoding="unicode", method="xml")

    @classmethod
    def from_gpx(cls, text: str) -> "Track":
        """Read the first track segment of a GPX document.

        Costs are unknown for an imported track, so segment_costs stays empty.

        Raises:
            ValueError: If the document has no track points.
        """
        ns = {"gpx": TrackConfig.GPX_NAMESPACE}
        root = ET.fromstring(text)
        trk = root.find("gpx:trk", ns)
        if trk is None:
            raise ValueError("GPX document contains no track")
        name_el = trk.find("gpx:name", ns)

        points = []
        for trkpt in trk.iterfind("gpx:trkseg/gpx:trkpt", ns):
            ele = trkpt.find("gpx:ele", ns)
            points.append(
                Coordinate(
                    lat=float(trkpt.attrib["lat"]),
                    lon=float(trkpt.attrib["lon"]),
                    elevation=float(ele.text) if ele is not None and ele.text else None,
                )
            )
        if not points:
            raise ValueError("GPX track has no points")

        logger.info(f"Read GPX track with {len(points)} points")
        return cls(
            points=points,
            waypoint_indices=[0, len(points) - 1],
            name=name_el.text if name_el is not None and name_el.text else TrackConfig.DEFAULT_NAME,
        )

    def __repr__(self) -> str:
        if not self.points:
            return f"Track({self.name}, empty)"
        return f"Track({self.name}, {len(self.points)} pts, {self.length_m:.0f}m, {format_duration(self.total_cost)})"
