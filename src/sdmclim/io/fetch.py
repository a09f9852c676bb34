"""
Download a remote climate file and turn the requested field, years and
window into a north-up Grid.
"""
import logging
import tempfile
from pathlib import Path

import numpy as np
import xarray as xr

from sdmclim.errors import ConfigurationError, ParseError, SelectionError
from sdmclim.grids.grid import BoundingBox, Grid
from sdmclim.io.catalog import (
    DEFAULT_CATALOG,
    CatalogConfig,
    Provenance,
    VariableSpec,
    build_locator,
    field_name,
    validate_spec,
)
from sdmclim.io.decode import decode_years
from sdmclim.utils.constants import DEFAULT_CRS, DOWNLOAD_TIMEOUT, LAT_NAMES, LON_NAMES, TIME_NAME
from sdmclim.utils.download import download_file
from sdmclim.utils.orientation import orient
from sdmclim.utils.validation import validate_url

log = logging.getLogger(__name__)


def _find_dim(da: xr.DataArray, candidates) -> str:
    for name in candidates:
        if name in da.dims:
            return name
    raise ParseError(f"None of {list(candidates)} found among dimensions {list(da.dims)}")


def _cell_size(coord: np.ndarray, name: str) -> float:
    if coord.size < 2:
        raise ParseError(f"Cannot infer cell size from {coord.size} '{name}' coordinate(s)")
    return float(np.abs(np.diff(coord.astype(float))).mean())


def _select_years(da: xr.DataArray, years: np.ndarray, spec: VariableSpec):
    """
    Pick time steps for the requested years.

    A single year yields a 2D slice. Several years yield every step from the
    first to the last matching index, so years between them that were not
    asked for are kept when the selection is not contiguous.
    """
    if spec.time_selector is None:
        return da, years

    available = sorted(set(years.tolist()))

    if spec.single_year is not None:
        matches = np.flatnonzero(years == spec.single_year)
        if matches.size == 0:
            raise SelectionError(
                f"Year {spec.single_year} not available. Available years: {available}"
            )
        if matches.size > 1:
            log.warning("Year %s matches %d time steps; using the first", spec.single_year, matches.size)
        return da.isel({TIME_NAME: int(matches[0])}), None

    matches = np.flatnonzero(np.isin(years, list(spec.time_selector)))
    if matches.size == 0:
        raise SelectionError(
            f"None of the years {list(spec.years)} are available. Available years: {available}"
        )

    missing = sorted(set(spec.time_selector) - set(years[matches].tolist()))
    if missing:
        log.warning("Years %s not available; returning the remaining selection", missing)

    lo, hi = int(matches.min()), int(matches.max())
    log.debug("Selecting time steps %d..%d for years %s", lo, hi, list(spec.years))
    return da.isel({TIME_NAME: slice(lo, hi + 1)}), years[lo:hi + 1]


def _window(da: xr.DataArray, lon_dim: str, lat_dim: str, window: BoundingBox | None) -> xr.DataArray:
    if window is None:
        return da

    lon = da[lon_dim].values
    lat = da[lat_dim].values
    xmin, ymin, xmax, ymax = window.resolve(lon.min(), lat.min(), lon.max(), lat.max())

    lon_idx = np.flatnonzero((lon >= xmin) & (lon <= xmax))
    lat_idx = np.flatnonzero((lat >= ymin) & (lat <= ymax))
    if lon_idx.size == 0 or lat_idx.size == 0:
        raise SelectionError(
            f"No cells inside window ({xmin}, {ymin}, {xmax}, {ymax}); data covers "
            f"({lon.min()}, {lat.min()}, {lon.max()}, {lat.max()})"
        )

    log.debug(
        "Window %s selects %s[%d:%d], %s[%d:%d]",
        window, lon_dim, lon_idx.min(), lon_idx.max() + 1, lat_dim, lat_idx.min(), lat_idx.max() + 1,
    )
    return da.isel({
        lon_dim: slice(int(lon_idx.min()), int(lon_idx.max()) + 1),
        lat_dim: slice(int(lat_idx.min()), int(lat_idx.max()) + 1),
    })


class GridFetcher:
    """
    Fetches one field from the remote archive per call.

    Instances only hold read-only settings, so one fetcher can serve
    concurrent calls; every call downloads into its own temporary directory.
    """

    def __init__(
        self,
        *,
        catalog: CatalogConfig = DEFAULT_CATALOG,
        base_url: str | None = None,
        timeout: float = DOWNLOAD_TIMEOUT,
        progress: bool = True,
    ):
        self.catalog = catalog if base_url is None else catalog.with_base_url(base_url)
        try:
            validate_url(self.catalog.base_url)
        except ValueError as e:
            raise ConfigurationError(
                f"Base URL must be http(s), got '{self.catalog.base_url}'"
            ) from e
        self.timeout = timeout
        self.progress = progress

    def locator(self, spec: VariableSpec) -> str:
        validate_spec(spec, self.catalog)
        return build_locator(spec, self.catalog)

    def fetch(self, spec: VariableSpec, spatial_window: BoundingBox | None = None) -> Grid:
        """
        Download and read the field described by ``spec``.

        Raises
        ------
        ConfigurationError
            Invalid request; raised before any network access.
        RetrievalError
            The download did not complete.
        ParseError
            Missing field or unsupported time encoding.
        SelectionError
            Requested year not in the file.
        """
        url = self.locator(spec)

        with tempfile.TemporaryDirectory(prefix="sdmclim_") as tmp_dir:
            path = download_file(url, tmp_dir, timeout=self.timeout, progress=self.progress)
            return self.read(path, spec, spatial_window, source_url=url)

    def read(
        self,
        path,
        spec: VariableSpec,
        spatial_window: BoundingBox | None = None,
        *,
        source_url: str | None = None,
    ) -> Grid:
        """Extract the requested field from an already downloaded file."""
        validate_spec(spec, self.catalog)
        name = field_name(spec, self.catalog)

        with xr.open_dataset(Path(path), decode_times=False) as ds:
            if name not in ds.data_vars:
                raise ParseError(
                    f"Field '{name}' not found in {Path(path).name}. "
                    f"Available fields: {sorted(ds.data_vars)}"
                )
            da = ds[name]
            lon_dim = _find_dim(da, LON_NAMES)
            lat_dim = _find_dim(da, LAT_NAMES)

            dx = _cell_size(da[lon_dim].values, lon_dim)
            dy = _cell_size(da[lat_dim].values, lat_dim)

            years = None
            if spec.has_time:
                if TIME_NAME not in da.dims:
                    raise ParseError(f"Field '{name}' has no '{TIME_NAME}' dimension")
                years = decode_years(ds[TIME_NAME].values, ds[TIME_NAME].attrs.get("units"))
                da, years = _select_years(da, years, spec)
            elif TIME_NAME in da.dims:
                if da.sizes[TIME_NAME] != 1:
                    raise ParseError(
                        f"Seasonal field '{name}' has {da.sizes[TIME_NAME]} time steps, expected 1"
                    )
                da = da.isel({TIME_NAME: 0})

            da = _window(da, lon_dim, lat_dim, spatial_window)

            order = [lon_dim, lat_dim] + ([TIME_NAME] if TIME_NAME in da.dims else [])
            raw = da.transpose(*order).values
            lon = da[lon_dim].values.astype(float)
            lat = da[lat_dim].values.astype(float)
            units = da.attrs.get("units")

        values = orient(raw, Provenance.of(spec))

        grid = Grid(
            values=values,
            x_min=lon.min() - dx / 2,
            x_max=lon.max() + dx / 2,
            y_min=lat.min() - dy / 2,
            y_max=lat.max() + dy / 2,
            cell_size_x=dx,
            cell_size_y=dy,
            crs=DEFAULT_CRS,
            years=None if years is None else tuple(int(y) for y in years),
            attrs={
                "variable": spec.variable,
                "parameter": spec.parameter,
                "period": spec.period,
                "scenario": spec.scenario,
                "units": units,
                "source_url": source_url,
            },
        )
        log.info("Read '%s' as grid of shape %s", name, grid.values.shape)
        return grid


def fetch_grid(spec: VariableSpec, spatial_window: BoundingBox | None = None, **kwargs) -> Grid:
    """Functional shortcut for ``GridFetcher(**kwargs).fetch(spec, spatial_window)``."""
    return GridFetcher(**kwargs).fetch(spec, spatial_window)
