import shutil

import numpy as np
import pandas as pd
import pytest
import xarray as xr

import rioxarray  # noqa: F401 (ensures .rio accessor is registered)

from sdmclim.grids import Grid
from sdmclim.io import VariableSpec


# -----------------------------------------------------------------------------
# Time encodings
# -----------------------------------------------------------------------------

def days_since_2000(year, month=7, day=1):
    return (pd.Timestamp(year=year, month=month, day=day) - pd.Timestamp("2000-01-01")).days



# -----------------------------------------------------------------------------
# Synthetic archive files
# -----------------------------------------------------------------------------

LONS = np.arange(-10.0, 0.0, 1.0)   # 10 columns, cell centers
LATS = np.arange(40.0, 46.0, 1.0)   # 6 rows, ascending (south → north)


@pytest.fixture
def lons():
    return LONS.copy()


@pytest.fixture
def lats():
    return LATS.copy()


@pytest.fixture
def make_series_file(tmp_path):
    """
    Factory writing a (time, lat, lon) netCDF file the way the archive
    packages yearly series. Returns (path, data).
    """
    def _make(
        name="sst_mean",
        years=(2020, 2021),
        units="days since 2000-01-01",
        encode=days_since_2000,
        filename="series.nc",
    ):
        data = np.arange(len(years) * LATS.size * LONS.size, dtype="float32").reshape(
            len(years), LATS.size, LONS.size
        )
        ds = xr.Dataset(
            {name: (("time", "lat", "lon"), data, {"units": "degC"})},
            coords={
                "time": ("time", np.array([encode(y) for y in years], dtype="int64"), {"units": units}),
                "lat": LATS,
                "lon": LONS,
            },
        )
        path = tmp_path / filename
        ds.to_netcdf(path)
        return path, data

    return _make


@pytest.fixture
def make_seasonal_file(tmp_path):
    """Seasonal snapshot without time dimension; latitude stored north → south."""
    def _make(name="sst_mean", filename="seasonal.nc"):
        lats = LATS[::-1]
        data = np.arange(lats.size * LONS.size, dtype="float32").reshape(lats.size, LONS.size)
        ds = xr.Dataset(
            {name: (("lat", "lon"), data)},
            coords={"lat": lats, "lon": LONS},
        )
        path = tmp_path / filename
        ds.to_netcdf(path)
        return path, data

    return _make


@pytest.fixture
def fake_download(mocker):
    """
    Patch the downloader used by GridFetcher so it copies a local file into
    the fetch's temporary directory instead of touching the network.
    """
    downloaded = []

    def _install(source_path):
        def _download(url, out_directory, **kwargs):
            out_fp = shutil.copy(source_path, out_directory)
            downloaded.append(out_fp)
            return out_fp

        return mocker.patch("sdmclim.io.fetch.download_file", side_effect=_download)

    _install.downloaded = downloaded
    return _install


# -----------------------------------------------------------------------------
# Requests and grids
# -----------------------------------------------------------------------------

@pytest.fixture
def historical_spec():
    return VariableSpec(
        period="historical",
        variable="sst",
        parameter="mean",
        temporal_resolution="range",
        time_selector=2020,
    )


@pytest.fixture
def projected_spec():
    return VariableSpec(
        period="projected",
        variable="sst",
        parameter="mean",
        temporal_resolution="range",
        scenario="ssp245",
        time_selector=[2050, 2060],
    )


@pytest.fixture
def small_grid():
    """3 rows × 4 columns, 0.5° cells, north-up."""
    values = np.arange(12, dtype="float32").reshape(3, 4)
    return Grid(
        values=values,
        x_min=-6.0,
        x_max=-4.0,
        y_min=49.0,
        y_max=50.5,
        cell_size_x=0.5,
        cell_size_y=0.5,
        attrs={"variable": "sst"},
    )


@pytest.fixture
def stacked_grid(small_grid):
    values = np.stack([small_grid.values, small_grid.values + 100], axis=-1)
    return Grid(
        values=values,
        x_min=small_grid.x_min,
        x_max=small_grid.x_max,
        y_min=small_grid.y_min,
        y_max=small_grid.y_max,
        cell_size_x=0.5,
        cell_size_y=0.5,
        years=(2020, 2021),
    )


# -----------------------------------------------------------------------------
# Point sets
# -----------------------------------------------------------------------------

@pytest.fixture
def occurrences():
    rng = np.random.default_rng(0)
    n = 200
    return pd.DataFrame({
        "lon": rng.uniform(-6.0, -3.0, n),
        "lat": rng.uniform(49.0, 51.0, n),
        "year": rng.integers(1990, 2020, n),
        "species": rng.choice(["Patella vulgata", "Semibalanus balanoides"], n),
    })


@pytest.fixture
def presences():
    return pd.DataFrame({"lon": [-5.0, -5.05], "lat": [50.0, 50.05]})
