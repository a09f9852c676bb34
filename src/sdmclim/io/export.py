import logging
from pathlib import Path

import numpy as np
import pandas as pd

from sdmclim.errors import ConfigurationError
from sdmclim.grids.grid import Grid
from sdmclim.io.catalog import DEFAULT_CATALOG, CatalogConfig, VariableSpec, field_name, resolution_token
from sdmclim.utils.constants import FORMAT_EXTENSIONS, PERIOD_PROJECTED, TABLE_FORMATS
from sdmclim.utils.validation import validate_path

log = logging.getLogger(__name__)

ASCII_NODATA = -9999.0


def _sanitize_attrs(attrs: dict) -> dict:
    """Drop None values and unwrap numpy scalars so attrs are netCDF-safe."""
    clean = {}
    for k, v in attrs.items():
        if v is None:
            continue
        clean[k] = v.item() if isinstance(v, np.generic) else v
    return clean


def selector_label(spec: VariableSpec) -> str:
    if spec.time_selector is None:
        return "all"
    return "-".join(str(y) for y in spec.years)


def build_filename(
    spec: VariableSpec,
    fmt: str,
    catalog: CatalogConfig = DEFAULT_CATALOG,
    *,
    step=None,
) -> str:
    """
    Deterministic output filename for a request.

    ``{variable}[_{parameter}]_{resolution}_{selector}[_{scenario}][_{step}].{ext}``;
    indicator variables have no parameter and only projected data carries a
    scenario. ``step`` names one time step of a stack written one file per
    step (ASCII grids), usually its year. Downstream steps rebuild this name
    to find the file again.
    """
    if fmt not in FORMAT_EXTENSIONS:
        raise ConfigurationError(
            f"Unknown output format '{fmt}'. Valid formats: {sorted(FORMAT_EXTENSIONS)}"
        )

    parts = [spec.variable]
    if spec.variable not in catalog.indicators and spec.parameter is not None:
        parts.append(spec.parameter)
    parts.append(resolution_token(spec.temporal_resolution))
    parts.append(selector_label(spec))
    if spec.period == PERIOD_PROJECTED and spec.scenario is not None:
        parts.append(spec.scenario)
    if step is not None:
        parts.append(str(step))

    return "_".join(parts) + "." + FORMAT_EXTENSIONS[fmt]


def export_netcdf(ds, filepath, overwrite=True):
    assert filepath.suffix == '.nc'
    ds.attrs['crs'] = str(ds.rio.crs)

    ds.attrs = _sanitize_attrs(ds.attrs)
    for var in list(ds.data_vars) + list(ds.coords):
        ds[var].attrs = _sanitize_attrs(ds[var].attrs)

    encoding = {}
    for var in ds.data_vars:
        encoding[var] = {'zlib': True, 'complevel': 4}
        if '_FillValue' in ds[var].attrs:
            del ds[var].attrs['_FillValue']
        if ds[var].dtype.kind == 'f':
            encoding[var]['_FillValue'] = np.nan

    if overwrite and filepath.exists():
        filepath.unlink()

    log.info("Writing netCDF: %s", filepath)
    ds.to_netcdf(filepath, encoding=encoding)
    size_mb = filepath.stat().st_size / (1024 ** 2)
    log.info("Wrote %s (%.2f MB)", filepath.name, size_mb)


def export_ascii(da, filepath) -> Path:
    """Write a 2D grid as ESRI ASCII, NaN cells written as the nodata value."""
    assert filepath.suffix == '.asc'
    da = da.fillna(ASCII_NODATA).rio.write_nodata(ASCII_NODATA)

    log.info("Writing ASCII grid: %s", filepath)
    da.rio.to_raster(filepath, driver="AAIGrid")
    return filepath


def serialize_grid(
    grid: Grid,
    fmt: str,
    destination=None,
    spec: VariableSpec | None = None,
    *,
    save: bool = True,
    return_object: bool = False,
    catalog: CatalogConfig = DEFAULT_CATALOG,
) -> Grid | pd.DataFrame | None:
    """
    Write a grid in one of the supported formats and/or hand it back.

    Parameters
    ----------
    grid : Grid
    fmt : str
        ``netcdf`` or ``ascii`` write the grid itself; ``csv`` and ``pickle``
        write the ``lon, lat, value`` table from ``Grid.to_table``.
    destination : str | Path
        Output directory; created if missing. Required when ``save``.
    spec : VariableSpec
        Request the grid came from; drives the filename.
    save : bool
        Write to disk.
    return_object : bool
        Return the Grid (grid formats) or DataFrame (table formats).
    """
    if fmt not in FORMAT_EXTENSIONS:
        raise ConfigurationError(
            f"Unknown output format '{fmt}'. Valid formats: {sorted(FORMAT_EXTENSIONS)}"
        )

    obj = grid.to_table() if fmt in TABLE_FORMATS else grid

    if save:
        if destination is None or spec is None:
            raise ConfigurationError("Saving requires both a destination directory and a spec")
        out_dir = validate_path(destination, make_directory=True)
        filepath = out_dir / build_filename(spec, fmt, catalog)

        if fmt == "netcdf":
            name = field_name(spec, catalog)
            export_netcdf(grid.to_dataarray(name=name).to_dataset(), filepath)
        elif fmt == "ascii":
            da = grid.to_dataarray()
            if not grid.has_time:
                export_ascii(da, filepath)
            else:
                # ASCII grids hold one band; write one file per time step
                steps = grid.years if grid.years is not None else range(da.sizes["time"])
                for i, step in enumerate(steps):
                    step_fp = out_dir / build_filename(spec, fmt, catalog, step=step)
                    export_ascii(da.isel(time=i), step_fp)
        elif fmt == "csv":
            log.info("Writing table: %s", filepath)
            obj.to_csv(filepath, index=False)
        else:
            log.info("Writing pickle: %s", filepath)
            obj.to_pickle(filepath)

    if return_object:
        return obj
    return None
