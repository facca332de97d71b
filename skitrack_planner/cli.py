"""Command line entry point.

Usage:
    skitrack -p request.json [-o track.gpx] [--dem dem.tif] [-v]

Reads a JSON route request, plans the track on the DEM and writes it as GPX.
The output path falls back to the request's "output" field, then to the
request filename with a .gpx suffix.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from skitrack_planner.constants import DEMConfig
from skitrack_planner.core.dem_service import DEMService
from skitrack_planner.core.errors import RoutingError
from skitrack_planner.generators.route_composer import plan_route
from skitrack_planner.model.route_request import RouteRequest

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skitrack",
        description="Plan the least-effort ski touring track through a list of waypoints.",
    )
    parser.add_argument("-p", "--params", required=True, type=Path, help="JSON route request")
    parser.add_argument("-o", "--output", type=Path, default=None, help="Output GPX file")
    parser.add_argument(
        "--dem", type=Path, default=DEMConfig.DEM_PATH, help=f"Elevation GeoTIFF (default: {DEMConfig.DEM_PATH})"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _output_path(args: argparse.Namespace, request: RouteRequest) -> Path:
    if args.output is not None:
        return args.output
    if request.output:
        return Path(request.output)
    return args.params.with_suffix(".gpx")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    dem = DEMService(dem_path=args.dem)
    try:
        request = RouteRequest.from_file(path=args.params)
        track = plan_route(request=request, elevation_provider=dem)
        output = _output_path(args=args, request=request)
        output.write_text(track.to_gpx(), encoding="utf-8")
    except (RoutingError, OSError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    finally:
        dem.close()

    logger.info(f"Wrote {len(track.points)} track points to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
