"""
Background (pseudo-absence) candidates drawn from the area around presences.
"""
from dataclasses import dataclass

import geopandas as gpd
import numpy as np
import pandas as pd
import shapely
from pyproj import CRS
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from sdmclim.errors import ConfigurationError, SamplingError
from sdmclim.grids.grid import Grid, make_empty_grid
from sdmclim.sampling.stratified import build_cell_index
from sdmclim.utils.constants import DEFAULT_CRS
from sdmclim.utils.validation import validate_points, validate_radius, validate_resolution

import logging
log = logging.getLogger(__name__)

MAX_REJECTION_ROUNDS = 1000


def _to_projected(lon, lat, crs) -> gpd.GeoSeries:
    return gpd.GeoSeries(gpd.points_from_xy(lon, lat), crs=DEFAULT_CRS).to_crs(crs)


@dataclass(frozen=True)
class BufferedRegion:
    """
    Union of fixed-radius disks around presence points.

    The geometry lives in a local UTM CRS so the radius is in meters;
    ``contains`` and ``sample`` take and return lon/lat.
    """
    geometry: BaseGeometry
    crs: CRS
    radius: float

    @classmethod
    def from_points(cls, points, radius, *, lon_col="lon", lat_col="lat") -> "BufferedRegion":
        df = validate_points(points, lon_col=lon_col, lat_col=lat_col)
        radius = validate_radius(radius)

        gdf = gpd.GeoDataFrame(
            geometry=gpd.points_from_xy(df[lon_col], df[lat_col]),
            crs=DEFAULT_CRS,
        )
        utm = gdf.estimate_utm_crs()
        geometry = unary_union(list(gdf.to_crs(utm).geometry.buffer(radius)))
        return cls(geometry=geometry, crs=utm, radius=radius)

    @property
    def geographic_bounds(self) -> tuple[float, float, float, float]:
        return tuple(gpd.GeoSeries([self.geometry], crs=self.crs).to_crs(DEFAULT_CRS).total_bounds)

    def contains(self, lon, lat) -> np.ndarray:
        projected = _to_projected(lon, lat, self.crs)
        return shapely.contains_xy(self.geometry, projected.x.to_numpy(), projected.y.to_numpy())

    @property
    def polygons(self) -> list:
        """Disjoint parts of the union."""
        return list(getattr(self.geometry, "geoms", [self.geometry]))

    def sample(self, n: int, rng: np.random.Generator) -> pd.DataFrame:
        """
        Draw ``n`` points uniformly over the union.

        Draws are split across the union's parts in proportion to their
        area, then each part is filled by rejection from its own bounding
        box. Distant presences therefore cost no more than a single one.
        """
        polygons = self.polygons
        areas = np.array([p.area for p in polygons])
        counts = rng.multinomial(n, areas / areas.sum())

        xs, ys = [], []
        for polygon, count in zip(polygons, counts):
            if count:
                x, y = _fill_polygon(polygon, int(count), rng)
                xs.append(x)
                ys.append(y)

        order = rng.permutation(n)
        x = np.concatenate(xs)[order]
        y = np.concatenate(ys)[order]
        geographic = gpd.GeoSeries(gpd.points_from_xy(x, y), crs=self.crs).to_crs(DEFAULT_CRS)
        return pd.DataFrame({"lon": geographic.x.to_numpy(), "lat": geographic.y.to_numpy()})


def _fill_polygon(polygon, n: int, rng: np.random.Generator) -> tuple[np.ndarray, np.ndarray]:
    """Rejection-sample ``n`` uniform points inside one polygon."""
    minx, miny, maxx, maxy = polygon.bounds
    xs, ys = [], []
    accepted = 0

    for _ in range(MAX_REJECTION_ROUNDS):
        if accepted >= n:
            break
        size = max(2 * (n - accepted), 64)
        x = rng.uniform(minx, maxx, size)
        y = rng.uniform(miny, maxy, size)
        inside = shapely.contains_xy(polygon, x, y)
        xs.append(x[inside])
        ys.append(y[inside])
        accepted += int(inside.sum())

    if accepted < n:
        raise SamplingError(
            f"Rejection sampling placed only {accepted} of {n} points "
            f"after {MAX_REJECTION_ROUNDS} rounds"
        )
    return np.concatenate(xs)[:n], np.concatenate(ys)[:n]


@dataclass(frozen=True)
class BackgroundSample:
    raw: pd.DataFrame
    candidates: pd.DataFrame
    background: pd.DataFrame
    region: BufferedRegion
    grid: Grid


def sample_background(
    presence,
    radius,
    n_samples: int,
    resolution,
    seed=None,
    *,
    lon_col: str = "lon",
    lat_col: str = "lat",
) -> BackgroundSample:
    """
    Generate background points at grid-cell centers inside the buffered area.

    1. Buffer every presence by ``radius`` meters and union the disks.
    2. Draw ``n_samples`` uniform points inside the union.
    3. Rasterize them, keep one per occupied cell and replace it with the
       cell center (``candidates``).
    4. Keep the centers that themselves fall inside the union (``background``).

    Parameters
    ----------
    presence : pd.DataFrame or sequence of (lon, lat)
    radius : float
        Buffer radius in meters.
    n_samples : int
        Number of raw points drawn in step 2.
    resolution : float or (float, float)
        Cell size in degrees.
    seed : int | np.random.Generator | None
    """
    if isinstance(n_samples, bool) or not isinstance(n_samples, (int, np.integer)):
        raise TypeError(f"n_samples must be an integer, got {type(n_samples)}")
    if n_samples <= 0:
        raise ConfigurationError(f"n_samples must be positive, got {n_samples}")
    xres, yres = validate_resolution(resolution)
    rng = np.random.default_rng(seed)

    region = BufferedRegion.from_points(presence, radius, lon_col=lon_col, lat_col=lat_col)
    raw = region.sample(int(n_samples), rng)

    lon = raw["lon"].to_numpy()
    lat = raw["lat"].to_numpy()
    rminx, rminy, rmaxx, rmaxy = region.geographic_bounds
    grid = make_empty_grid(
        bounds=(
            min(rminx, lon.min()),
            min(rminy, lat.min()),
            max(rmaxx, lon.max()),
            max(rmaxy, lat.max()),
        ),
        resolution=(xres, yres),
    )

    index = build_cell_index(grid, lon, lat)
    rows = np.array([r for r, _ in index], dtype=int)
    cols = np.array([c for _, c in index], dtype=int)
    center_lon, center_lat = grid.center_of(rows, cols)
    candidates = pd.DataFrame({"lon": center_lon, "lat": center_lat, "row": rows, "col": cols})

    inside = region.contains(candidates["lon"].to_numpy(), candidates["lat"].to_numpy())
    background = candidates[inside].reset_index(drop=True)

    log.info(
        "Background sampling: %d raw points, %d occupied cells, %d centers inside buffer",
        len(raw), len(candidates), len(background),
    )
    return BackgroundSample(
        raw=raw,
        candidates=candidates,
        background=background,
        region=region,
        grid=grid,
    )
