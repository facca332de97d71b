"""Digital Elevation Model (DEM) service for terrain elevation queries.

Provides the elevation source the routing engine samples while it grows the
terrain graph:
- ElevationProvider: the protocol the engine depends on
- DEMService: GeoTIFF-backed provider (any CRS rasterio can read)
  - Fast O(1) elevation lookup using a pre-loaded NumPy array
  - Automatic coordinate transformation from WGS84 to the DEM's native CRS
  - Thread-safe lazy loading

A provider returns None for coordinates without data (outside the raster, on
nodata cells or NaN). The engine decides whether that is fatal.
"""

import logging
import threading
import time
from math import floor
from pathlib import Path
from typing import Optional, Protocol

import numpy as np
import rasterio
from rasterio.transform import rowcol
from rasterio.warp import transform, transform_bounds

from skitrack_planner.constants import DEMConfig

logger = logging.getLogger(__name__)


class ElevationProvider(Protocol):
    """Anything that resolves a WGS84 coordinate to meters above sea level."""

    def get_elevation(self, lon: float, lat: float) -> Optional[float]:
        """Return elevation in meters, or None when outside covered data."""
        ...


class DEMService:
    """Elevation sampling from a GeoTIFF.

    The raster is read on first access into a float64 array with nodata cells
    set to NaN. Lookups after loading are lock-free and safe from several
    threads.

    Example:
        with DEMService(dem_path=Path("data/dem.tif")) as dem:
            elevation = dem.get_elevation(lon=8.9, lat=61.5)
    """

    def __init__(self, dem_path: Optional[Path] = None) -> None:
        """Args:
        dem_path: Path to the GeoTIFF (uses DEMConfig.DEM_PATH by default)
        """
        self.dem_path = Path(dem_path) if dem_path is not None else DEMConfig.DEM_PATH
        self._load_lock = threading.Lock()
        self._dataset = None
        self._crs = DEMConfig.WGS84
        self._heights: Optional[np.ndarray] = None

    @property
    def is_loaded(self) -> bool:
        return self._heights is not None

    def _load(self) -> np.ndarray:
        """Read band 1 on first use; later calls return the cached array."""
        heights = self._heights
        if heights is not None:
            return heights

        with self._load_lock:
            if self._heights is not None:
                return self._heights
            if not self.dem_path.exists():
                raise FileNotFoundError(f"DEM file not found at {self.dem_path}")

            logger.info(f"Loading DEM from {self.dem_path}...")
            started = time.time()
            self._dataset = rasterio.open(self.dem_path)
            if self._dataset.crs:
                self._crs = self._dataset.crs.to_string()
            band = self._dataset.read(1, masked=True)
            heights = np.ma.filled(band.astype("float64"), np.nan)
            # Published last: is_loaded and the lock-free fast path check it
            self._heights = heights
            logger.info(
                f"DEM loaded in {time.time() - started:.2f}s (shape: {heights.shape}, CRS: {self._crs})"
            )
            return heights

    def _cell(self, lon: float, lat: float) -> tuple[int, int]:
        """Raster (row, col) holding a WGS84 coordinate."""
        if self._crs == DEMConfig.WGS84:
            x, y = lon, lat
        else:
            xs, ys = transform(DEMConfig.WGS84, self._crs, [lon], [lat])
            x, y = xs[0], ys[0]
        row, col = rowcol(self._dataset.transform, x, y, op=floor)
        return int(row), int(col)

    def get_elevation(self, lon: float, lat: float) -> Optional[float]:
        """Elevation in meters at a WGS84 coordinate.

        Returns:
            Elevation in meters, or None outside the raster and on nodata cells.
        """
        heights = self._load()
        row, col = self._cell(lon=lon, lat=lat)
        n_rows, n_cols = heights.shape
        if not (0 <= row < n_rows and 0 <= col < n_cols):
            logger.warning(f"No DEM cell for lon={lon}, lat={lat} (row={row}, col={col})")
            return None
        value = heights[row, col]
        if np.isnan(value):
            logger.warning(f"Nodata cell at lon={lon}, lat={lat}")
            return None
        return float(value)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Raster footprint as (min_lon, min_lat, max_lon, max_lat)."""
        self._load()
        return transform_bounds(self._crs, DEMConfig.WGS84, *self._dataset.bounds)

    def close(self) -> None:
        """Release the underlying raster handle."""
        if self._dataset is not None:
            self._dataset.close()

    def __enter__(self) -> "DEMService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
