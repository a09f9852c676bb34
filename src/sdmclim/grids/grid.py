from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import xarray as xr
import rioxarray  # noqa: F401 (registers .rio accessor)
from rasterio.transform import from_bounds

from sdmclim.errors import ConfigurationError
from sdmclim.utils.constants import DEFAULT_CRS
from sdmclim.utils.validation import validate_bbox, validate_crs, validate_resolution


@dataclass(frozen=True)
class BoundingBox:
    """
    Spatial window in degrees. Any edge left as None falls back to the
    extent of the data it is applied to.
    """
    xmin: float | None = None
    ymin: float | None = None
    xmax: float | None = None
    ymax: float | None = None

    def __post_init__(self):
        if self.xmin is not None and self.xmax is not None and self.xmin > self.xmax:
            raise ConfigurationError(f"xmin ({self.xmin}) is greater than xmax ({self.xmax})")
        if self.ymin is not None and self.ymax is not None and self.ymin > self.ymax:
            raise ConfigurationError(f"ymin ({self.ymin}) is greater than ymax ({self.ymax})")

    def resolve(self, xmin, ymin, xmax, ymax) -> tuple[float, float, float, float]:
        """Fill unspecified edges from the given extent."""
        return (
            xmin if self.xmin is None else self.xmin,
            ymin if self.ymin is None else self.ymin,
            xmax if self.xmax is None else self.xmax,
            ymax if self.ymax is None else self.ymax,
        )


@dataclass(frozen=True, eq=False)
class Grid:
    """
    Geo-referenced regular grid.

    ``values`` is row-major and north-up: row 0 is the northern edge, column 0
    the western edge. Time-stacked grids carry the time steps on the last axis
    (rows, cols, steps) and list the matching years in ``years``.
    """
    values: np.ndarray
    x_min: float
    x_max: float
    y_min: float
    y_max: float
    cell_size_x: float
    cell_size_y: float
    crs: str = DEFAULT_CRS
    years: tuple[int, ...] | None = None
    attrs: dict = field(default_factory=dict, compare=False)

    def __post_init__(self):
        values = np.array(self.values, copy=True)
        if values.ndim not in (2, 3):
            raise ValueError(f"Grid values must be 2D or 3D, got {values.ndim}D")
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

        if not self.x_min < self.x_max:
            raise ValueError(f"x_min ({self.x_min}) must be less than x_max ({self.x_max})")
        if not self.y_min < self.y_max:
            raise ValueError(f"y_min ({self.y_min}) must be less than y_max ({self.y_max})")

        validate_resolution((self.cell_size_x, self.cell_size_y))
        validate_crs(self.crs)

        rows, cols = values.shape[:2]
        if abs(cols * self.cell_size_x - (self.x_max - self.x_min)) > self.cell_size_x / 2:
            raise ValueError(
                f"{cols} columns at {self.cell_size_x} do not span x extent "
                f"({self.x_min}, {self.x_max})"
            )
        if abs(rows * self.cell_size_y - (self.y_max - self.y_min)) > self.cell_size_y / 2:
            raise ValueError(
                f"{rows} rows at {self.cell_size_y} do not span y extent "
                f"({self.y_min}, {self.y_max})"
            )

        if self.years is not None:
            years = tuple(int(y) for y in self.years)
            if values.ndim != 3 or len(years) != values.shape[2]:
                raise ValueError(
                    f"{len(years)} years given for values of shape {values.shape}"
                )
            object.__setattr__(self, "years", years)

    # ---------- geometry ----------

    @property
    def shape(self) -> tuple[int, int]:
        return self.values.shape[:2]

    @property
    def has_time(self) -> bool:
        return self.values.ndim == 3

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        return self.x_min, self.y_min, self.x_max, self.y_max

    @property
    def x_coords(self) -> np.ndarray:
        """Cell-center longitudes, west to east."""
        return self.x_min + (np.arange(self.shape[1]) + 0.5) * self.cell_size_x

    @property
    def y_coords(self) -> np.ndarray:
        """Cell-center latitudes, north to south."""
        return self.y_max - (np.arange(self.shape[0]) + 0.5) * self.cell_size_y

    def cell_centers(self) -> tuple[np.ndarray, np.ndarray]:
        """2D (lon, lat) arrays of every cell center, shaped like ``shape``."""
        return np.meshgrid(self.x_coords, self.y_coords)

    def contains(self, lon, lat) -> np.ndarray:
        lon = np.asarray(lon, dtype=float)
        lat = np.asarray(lat, dtype=float)
        return (
            (lon >= self.x_min) & (lon <= self.x_max)
            & (lat >= self.y_min) & (lat <= self.y_max)
        )

    def cell_of(self, lon, lat) -> tuple[np.ndarray, np.ndarray]:
        """
        Integer (row, col) of the cell each coordinate falls in.

        Points on the eastern or southern edge belong to the last column/row.
        Points outside the extent raise.
        """
        lon = np.asarray(lon, dtype=float)
        lat = np.asarray(lat, dtype=float)
        if not np.all(self.contains(lon, lat)):
            raise ValueError("Some coordinates fall outside the grid extent")

        rows, cols = self.shape
        col = np.floor((lon - self.x_min) / self.cell_size_x).astype(int)
        row = np.floor((self.y_max - lat) / self.cell_size_y).astype(int)
        return np.clip(row, 0, rows - 1), np.clip(col, 0, cols - 1)

    def center_of(self, row, col) -> tuple[np.ndarray, np.ndarray]:
        """Cell-center (lon, lat) of the given cells."""
        row = np.asarray(row)
        col = np.asarray(col)
        lon = self.x_min + (col + 0.5) * self.cell_size_x
        lat = self.y_max - (row + 0.5) * self.cell_size_y
        return lon, lat

    # ---------- conversions ----------

    def to_dataarray(self, name: str = "value") -> xr.DataArray:
        """Canonical DataArray with dims (y, x) or (time, y, x) and CRS/transform written."""
        rows, cols = self.shape
        coords = {"y": self.y_coords, "x": self.x_coords}

        if self.has_time:
            data = np.moveaxis(self.values, 2, 0)
            if self.years is not None:
                time = pd.to_datetime([f"{y}-01-01" for y in self.years])
            else:
                time = np.arange(data.shape[0])
            coords["time"] = time
            dims = ("time", "y", "x")
        else:
            data = self.values
            dims = ("y", "x")

        da = xr.DataArray(np.array(data), dims=dims, coords=coords, name=name)
        da.attrs.update({k: v for k, v in self.attrs.items() if v is not None})

        transform = from_bounds(self.x_min, self.y_min, self.x_max, self.y_max, cols, rows)
        da = da.rio.write_crs(self.crs)
        da = da.rio.write_transform(transform)
        return da

    def to_table(self) -> pd.DataFrame:
        """
        Flatten to one row per cell with ``lon``, ``lat`` and ``value`` columns.
        Time-stacked grids get one block per time step plus a ``year`` column.
        """
        lon, lat = self.cell_centers()
        lon = lon.ravel()
        lat = lat.ravel()

        if not self.has_time:
            return pd.DataFrame({"lon": lon, "lat": lat, "value": self.values.ravel()})

        steps = self.values.shape[2]
        years = self.years if self.years is not None else range(steps)
        blocks = [
            pd.DataFrame({
                "lon": lon,
                "lat": lat,
                "year": year,
                "value": self.values[:, :, i].ravel(),
            })
            for i, year in enumerate(years)
        ]
        return pd.concat(blocks, ignore_index=True)


def make_empty_grid(
    *,
    bounds,
    resolution,
    crs=DEFAULT_CRS,
    dtype="float32",
    fill_value=np.nan,
) -> Grid:
    """
    Create an empty grid anchored at the lower-left corner of ``bounds``.

    Parameters
    ----------
    bounds : tuple
        (minx, miny, maxx, maxy) in ``crs`` units
    resolution : float or (float, float)
        Cell size in CRS units
    """
    minx, miny, maxx, maxy = validate_bbox(bounds)
    xres, yres = validate_resolution(resolution)

    # Number of cells, at least one so degenerate extents (a single point) still index
    width = max(int(np.ceil((maxx - minx) / xres)), 1)
    height = max(int(np.ceil((maxy - miny) / yres)), 1)

    data = np.full((height, width), fill_value, dtype=dtype)

    return Grid(
        values=data,
        x_min=minx,
        x_max=minx + width * xres,
        y_min=miny,
        y_max=miny + height * yres,
        cell_size_x=xres,
        cell_size_y=yres,
        crs=crs,
    )
