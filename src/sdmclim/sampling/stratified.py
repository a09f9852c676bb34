"""
Spatially stratified thinning: rasterize points onto a grid and keep one
point per occupied cell.
"""
import zlib

import numpy as np
import pandas as pd

from sdmclim.errors import ConfigurationError
from sdmclim.grids.grid import Grid, make_empty_grid
from sdmclim.utils.validation import validate_points, validate_resolution

import logging
log = logging.getLogger(__name__)


def build_cell_index(grid: Grid, lon, lat) -> dict[tuple[int, int], np.ndarray]:
    """
    Map each occupied (row, col) cell to the positions of the points inside it.
    Keys are in sorted order.
    """
    row, col = grid.cell_of(lon, lat)
    cells = pd.DataFrame({"row": row, "col": col})
    return {
        (int(r), int(c)): np.asarray(members)
        for (r, c), members in sorted(cells.groupby(["row", "col"]).indices.items())
    }


def thin_points(
    points,
    resolution,
    seed=None,
    *,
    lon_col: str = "lon",
    lat_col: str = "lat",
) -> pd.DataFrame:
    """
    Keep one randomly chosen point per grid cell.

    The grid covers the points' extent plus one cell of margin on every side.
    Returned rows are taken unchanged from ``points`` (original index kept).

    Parameters
    ----------
    points : pd.DataFrame or sequence of (lon, lat)
    resolution : float or (float, float)
        Cell size in degrees.
    seed : int | np.random.Generator | None
        Fix for reproducible output.
    """
    df = validate_points(points, lon_col=lon_col, lat_col=lat_col)
    xres, yres = validate_resolution(resolution)
    rng = np.random.default_rng(seed)

    lon = df[lon_col].to_numpy(dtype=float)
    lat = df[lat_col].to_numpy(dtype=float)

    grid = make_empty_grid(
        bounds=(lon.min() - xres, lat.min() - yres, lon.max() + xres, lat.max() + yres),
        resolution=(xres, yres),
    )
    index = build_cell_index(grid, lon, lat)

    picks = np.sort([rng.choice(members) for members in index.values()])
    log.info("Thinned %d points to %d across %d occupied cells", len(df), len(picks), len(index))
    return df.iloc[picks]


def thin_by_species(
    points: pd.DataFrame,
    species_col: str,
    resolution,
    seed: int | None = None,
    **kwargs,
) -> dict[str, pd.DataFrame]:
    """
    Thin each species' records separately.

    Each species draws from its own generator seeded with ``seed`` and the
    species name, so adding or removing a species leaves the others unchanged.
    """
    if not isinstance(points, pd.DataFrame):
        raise TypeError(f"Expected a DataFrame, got {type(points)}")
    if species_col not in points.columns:
        raise ConfigurationError(f"Column '{species_col}' not in point table")

    thinned = {}
    for species, records in points.groupby(species_col, sort=True):
        if seed is None:
            rng = np.random.default_rng()
        else:
            rng = np.random.default_rng([seed, zlib.crc32(str(species).encode())])
        thinned[species] = thin_points(records, resolution, rng, **kwargs)
    return thinned
