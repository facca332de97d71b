"""Tests for the skitrack command line entry point."""

import json
import logging

import pytest

from conftest import FlatDEM
from skitrack_planner import cli
from skitrack_planner.model.track import Track


@pytest.fixture
def fake_dem(monkeypatch) -> list:
    """Replace the GeoTIFF DEM with flat terrain; records the requested paths."""
    opened = []

    def factory(dem_path):
        opened.append(dem_path)
        return FlatDEM()

    monkeypatch.setattr(cli, "DEMService", factory)
    return opened


def write_request(tmp_path, **extra) -> str:
    path = tmp_path / "tour.json"
    data = {"start": [46.500, 10.000], "end": [46.502, 10.003], "resolution": 25, **extra}
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestCli:
    """main() - request in, GPX out, exit codes."""

    def test_writes_gpx(self, tmp_path, fake_dem) -> None:
        output = tmp_path / "out.gpx"
        exit_code = cli.main(["-p", write_request(tmp_path), "-o", str(output), "--dem", "terrain.tif"])

        assert exit_code == 0
        track = Track.from_gpx(output.read_text(encoding="utf-8"))
        assert track.start.lat == 46.5 and track.start.lon == 10.0
        assert track.end.lat == 46.502 and track.end.lon == 10.003
        assert [str(p) for p in fake_dem] == ["terrain.tif"]

    def test_default_output_next_to_request(self, tmp_path, fake_dem) -> None:
        assert cli.main(["-p", write_request(tmp_path)]) == 0
        assert (tmp_path / "tour.gpx").exists()

    def test_output_from_request(self, tmp_path, fake_dem) -> None:
        target = tmp_path / "named.gpx"
        assert cli.main(["-p", write_request(tmp_path, output=str(target))]) == 0
        assert target.exists()

    def test_invalid_request_exits_nonzero(self, tmp_path, fake_dem, caplog) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"points": [[46.5, 10.0]]}), encoding="utf-8")
        with caplog.at_level(logging.ERROR):
            assert cli.main(["-p", str(path)]) == 1
        assert "ConfigurationError" in caplog.text
        assert not (tmp_path / "bad.gpx").exists()

    def test_missing_request_file(self, tmp_path, fake_dem) -> None:
        assert cli.main(["-p", str(tmp_path / "missing.json")]) == 1

    def test_params_required(self) -> None:
        with pytest.raises(SystemExit):
            cli.main([])
