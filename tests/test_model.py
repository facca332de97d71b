"""Tests for skitrack_planner data model classes.

Tests: Coordinate, BarrierSegment, RouteRequest, Track
Focus: Parsing and validation, computed track metrics, GPX export/import.
"""

import json

import pytest

from skitrack_planner.constants import GridConfig, SearchConfig, TrackConfig
from skitrack_planner.core.errors import ConfigurationError
from skitrack_planner.model.barrier import BarrierSegment
from skitrack_planner.model.coordinate import Coordinate
from skitrack_planner.model.route_request import RouteRequest
from skitrack_planner.model.track import Track, format_duration


# =============================================================================
# COORDINATE
# =============================================================================


class TestCoordinate:
    """Coordinate - geometry atom with optional elevation."""

    def test_parse_dict_and_list(self) -> None:
        assert Coordinate.parse({"lat": 46.5, "lon": 10.0}) == Coordinate(lat=46.5, lon=10.0)
        assert Coordinate.parse([46.5, 10.0]) == Coordinate(lat=46.5, lon=10.0)
        assert Coordinate.parse([46.5, 10.0, 2100]).elevation == 2100.0
        assert Coordinate.parse({"lat": "46.5", "lon": 10}).lat == 46.5

    @pytest.mark.parametrize(
        "data",
        [{"lat": 46.5}, [46.5], "46.5,10.0", None, {"lat": "north", "lon": 10.0}, [46.5, 10.0, 1, 2]],
    )
    def test_parse_rejects_malformed(self, data) -> None:
        with pytest.raises(ConfigurationError):
            Coordinate.parse(data)

    def test_range_validation(self) -> None:
        with pytest.raises(ConfigurationError):
            Coordinate(lat=91.0, lon=0.0)
        with pytest.raises(ConfigurationError):
            Coordinate(lat=0.0, lon=-180.5)
        with pytest.raises(ConfigurationError):
            Coordinate(lat=float("nan"), lon=0.0)
        with pytest.raises(ConfigurationError):
            Coordinate(lat=0.0, lon=0.0, elevation=float("nan"))

    def test_with_elevation_keeps_location(self) -> None:
        point = Coordinate(lat=46.5, lon=10.0)
        annotated = point.with_elevation(1234.5)
        assert annotated.elevation == 1234.5
        assert annotated.same_location(point)
        assert annotated != point

    def test_distance(self) -> None:
        """0.01 degree of latitude ≈ 1112m."""
        a, b = Coordinate(lat=46.50, lon=10.0), Coordinate(lat=46.51, lon=10.0)
        assert a.distance_to(b) == pytest.approx(1112, abs=2)

    def test_to_dict(self) -> None:
        assert Coordinate(lat=1.0, lon=2.0).to_dict() == {"lat": 1.0, "lon": 2.0}
        assert Coordinate(lat=1.0, lon=2.0, elevation=3.0).to_dict() == {"lat": 1.0, "lon": 2.0, "elevation": 3.0}


# =============================================================================
# BARRIER
# =============================================================================


class TestBarrierSegment:
    """BarrierSegment - straight exclusion lines."""

    def test_chain_polyline(self) -> None:
        points = [Coordinate(lat=46.5, lon=10.0), Coordinate(lat=46.6, lon=10.0), Coordinate(lat=46.6, lon=10.1)]
        segments = BarrierSegment.chain(points)
        assert len(segments) == 2
        assert segments[0].end == segments[1].start

    def test_parse_polyline(self) -> None:
        segments = BarrierSegment.parse_polyline([[46.5, 10.0], {"lat": 46.6, "lon": 10.0}])
        assert segments == [BarrierSegment(start=Coordinate(lat=46.5, lon=10.0), end=Coordinate(lat=46.6, lon=10.0))]

    def test_invalid_barriers(self) -> None:
        with pytest.raises(ConfigurationError):
            BarrierSegment.chain([Coordinate(lat=46.5, lon=10.0)])
        with pytest.raises(ConfigurationError):
            BarrierSegment(start=Coordinate(lat=46.5, lon=10.0), end=Coordinate(lat=46.5, lon=10.0))
        with pytest.raises(ConfigurationError):
            BarrierSegment.parse_polyline({"lat": 46.5, "lon": 10.0})

    def test_length(self) -> None:
        segment = BarrierSegment(start=Coordinate(lat=46.50, lon=10.0), end=Coordinate(lat=46.51, lon=10.0))
        assert segment.length_m == pytest.approx(1112, abs=2)


# =============================================================================
# ROUTE REQUEST
# =============================================================================


class TestRouteRequest:
    """RouteRequest - parsing, validation and JSON round trip."""

    @pytest.fixture
    def request_data(self) -> dict:
        return {
            "start": {"lat": 46.50, "lon": 10.00},
            "waypoints": [[46.51, 10.01]],
            "end": {"lat": 46.52, "lon": 10.02},
            "barriers": [[[46.505, 10.00], [46.505, 10.01], [46.508, 10.01]]],
            "resolution": 20,
        }

    def test_from_dict(self, request_data: dict) -> None:
        request = RouteRequest.from_dict(request_data)
        assert [p.lat for p in request.waypoints] == [46.50, 46.51, 46.52]
        assert request.start.lat == 46.50 and request.end.lat == 46.52
        assert len(request.barriers) == 2
        assert request.resolution_m == 20.0

    def test_defaults(self) -> None:
        request = RouteRequest.from_dict({"start": [46.5, 10.0], "end": [46.6, 10.0]})
        assert request.resolution_m == GridConfig.RESOLUTION_M
        assert request.connectivity == GridConfig.CONNECTIVITY
        assert request.max_expansions == SearchConfig.MAX_EXPANSIONS
        assert request.refine_resolution_m is None
        assert request.covering_length is None
        assert request.cost_profile == "ski"
        assert request.track_name == TrackConfig.DEFAULT_NAME
        assert request.barriers == []

    def test_points_form(self) -> None:
        request = RouteRequest.from_dict({"points": [[46.5, 10.0], [46.55, 10.0], [46.6, 10.0]]})
        assert len(request.waypoints) == 3

    @pytest.mark.parametrize(
        "data, field",
        [
            ({"start": [46.5, 10.0]}, "end"),
            ({"end": [46.5, 10.0]}, "start"),
            ({"points": [[46.5, 10.0]]}, "start and an end"),
            ({"points": [[46.5, 10.0], [46.6, 10.0]], "start": [46.5, 10.0]}, "either"),
            ({"start": [46.5, 10.0], "end": [46.6, 10.0], "connectivity": 6}, "connectivity"),
            ({"start": [46.5, 10.0], "end": [46.6, 10.0], "connectivity": True}, "connectivity"),
            ({"start": [46.5, 10.0], "end": [46.6, 10.0], "resolution": -5}, "resolution"),
            ({"start": [46.5, 10.0], "end": [46.6, 10.0], "resolution": "fine"}, "resolution"),
            ({"start": [46.5, 10.0], "end": [46.6, 10.0], "cost_profile": "bike"}, "cost_profile"),
            ({"start": [46.5, 10.0], "end": [46.6, 10.0], "covering_length": 1.2}, "covering"),
            ({"start": [46.5, 10.0], "end": [46.6, 10.0], "refine_resolution": 50}, "refine_resolution"),
            ({"start": [46.5, 10.0], "end": [46.6, 10.0], "barriers": [[[46.5, 10.0]]]}, "Barrier"),
            ({"start": [46.5, 10.0], "end": [46.6, 10.0], "workers": 0}, "workers"),
        ],
    )
    def test_invalid_requests(self, data: dict, field: str) -> None:
        with pytest.raises(ConfigurationError, match=field):
            RouteRequest.from_dict(data)

    def test_unknown_field_rejected(self, request_data: dict) -> None:
        with pytest.raises(ConfigurationError, match="Unknown field 'resolutoin'"):
            RouteRequest.from_dict({**request_data, "resolutoin": 10})

    def test_legacy_parameter_names(self) -> None:
        request = RouteRequest.from_dict(
            {
                "start": [46.5, 10.0],
                "end": [46.6, 10.0],
                "grid_size_pass1": 40,
                "grid_size_pass2": 10,
                "path_width_pass2": 80,
                "output_fname": "tour.gpx",
                "params_fname": "params.json",
            }
        )
        assert request.resolution_m == 40.0
        assert request.refine_resolution_m == 10.0
        assert request.corridor_width_m == 80.0
        assert request.output == "tour.gpx"

    def test_alias_next_to_its_field(self, request_data: dict) -> None:
        with pytest.raises(ConfigurationError, match="given twice"):
            RouteRequest.from_dict({**request_data, "grid_size_pass1": 30})

    def test_steepness_limit(self, tmp_path, request_data: dict) -> None:
        assert RouteRequest.from_dict(request_data).max_steepness == GridConfig.MAX_STEEPNESS

        unlimited = RouteRequest.from_dict({**request_data, "max_steepness": None})
        assert unlimited.max_steepness is None
        path = tmp_path / "request.json"
        unlimited.write(path)
        assert RouteRequest.from_file(path).max_steepness is None

        with pytest.raises(ConfigurationError, match="max_steepness"):
            RouteRequest.from_dict({**request_data, "max_steepness": -1})

    def test_not_an_object(self) -> None:
        with pytest.raises(ConfigurationError):
            RouteRequest.from_dict([[46.5, 10.0], [46.6, 10.0]])

    def test_write_and_read(self, tmp_path, request_data: dict) -> None:
        request = RouteRequest.from_dict({**request_data, "refine_resolution": 10, "track_name": "Tour"})
        path = tmp_path / "request.json"
        request.write(path)
        assert RouteRequest.from_file(path) == request

    def test_write_requires_json_suffix(self, tmp_path, request_data: dict) -> None:
        with pytest.raises(ConfigurationError):
            RouteRequest.from_dict(request_data).write(tmp_path / "request.txt")

    def test_invalid_json_file(self, tmp_path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            RouteRequest.from_file(path)

    def test_to_dict_is_json_serializable(self, request_data: dict) -> None:
        data = RouteRequest.from_dict(request_data).to_dict()
        assert json.loads(json.dumps(data))["waypoints"] == [{"lat": 46.51, "lon": 10.01}]
        assert "refine_resolution" not in data


# =============================================================================
# TRACK
# =============================================================================


def _point(lat: float, elevation: float) -> Coordinate:
    return Coordinate(lat=lat, lon=10.0, elevation=elevation)


class TestTrack:
    """Track - composed route with computed metrics."""

    @pytest.fixture
    def track(self) -> Track:
        """Two fragments: up 100m, then down 40m and up 10m."""
        track = Track(name="Tour")
        track.append(fragment=[_point(46.500, 2000), _point(46.501, 2050), _point(46.502, 2100)], cost=300.0)
        track.append(fragment=[_point(46.502, 2100), _point(46.503, 2060), _point(46.504, 2070)], cost=150.0)
        return track

    def test_append_elides_junction(self, track: Track) -> None:
        assert len(track.points) == 5
        assert track.waypoint_indices == [0, 2, 4]
        assert track.segment_costs == [300.0, 150.0]

    def test_append_must_connect(self, track: Track) -> None:
        with pytest.raises(ValueError):
            track.append(fragment=[_point(46.9, 2000), _point(46.91, 2000)], cost=1.0)
        with pytest.raises(ValueError):
            track.append(fragment=[], cost=0.0)

    def test_metrics(self, track: Track) -> None:
        assert track.total_cost == 450.0
        assert track.ascent_m == pytest.approx(110.0)
        assert track.descent_m == pytest.approx(40.0)
        assert track.length_m == pytest.approx(4 * 111.2, abs=1)

    def test_empty_track(self) -> None:
        track = Track()
        assert track.start is None and track.end is None
        assert track.length_m == 0.0
        assert track.total_cost == 0.0
        assert "empty" in track.summary()

    def test_summary(self, track: Track) -> None:
        summary = track.summary()
        assert "Tour" in summary
        assert "Time: 7 min 30 sec" in summary
        assert "Total elevation: 110m" in summary

    @pytest.mark.parametrize(
        "seconds, expected",
        [(0, "0 sec"), (59.9, "59 sec"), (60, "1 min 0 sec"), (3725, "1 hr 2 min 5 sec")],
    )
    def test_format_duration(self, seconds: float, expected: str) -> None:
        assert format_duration(seconds) == expected

    def test_gpx_export(self, track: Track) -> None:
        gpx = track.to_gpx()
        assert gpx.startswith("<gpx")
        assert 'xmlns="http://www.topografix.com/GPX/1/1"' in gpx
        assert gpx.count("<trkpt") == 5
        assert "<ele>2100.0</ele>" in gpx

    def test_gpx_import(self, track: Track) -> None:
        imported = Track.from_gpx(track.to_gpx())
        assert imported.name == "Tour"
        assert imported.points == track.points
        assert imported.ascent_m == pytest.approx(track.ascent_m)

    def test_gpx_without_track(self) -> None:
        with pytest.raises(ValueError):
            Track.from_gpx('<gpx xmlns="http://www.topografix.com/GPX/1/1" version="1.1"></gpx>')
