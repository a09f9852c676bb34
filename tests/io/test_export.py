import itertools

import numpy as np
import pandas as pd
import pytest
import xarray as xr

from sdmclim.errors import ConfigurationError
from sdmclim.grids import Grid
from sdmclim.io import VariableSpec, build_filename, serialize_grid
from sdmclim.io.export import _sanitize_attrs, export_netcdf


# ----------------------------
# Filenames
# ----------------------------

def test_historical_filename(historical_spec):
    assert build_filename(historical_spec, "netcdf") == "sst_mean_yearly_2020.nc"


def test_projected_filename_has_scenario(projected_spec):
    assert build_filename(projected_spec, "pickle") == "sst_mean_yearly_2050-2060_ssp245.pkl"


def test_indicator_filename_drops_parameter():
    spec = VariableSpec(period="historical", variable="coldwave", temporal_resolution="full")
    assert build_filename(spec, "csv") == "coldwave_all_all.csv"


def test_seasonal_filename():
    spec = VariableSpec(period="historical", variable="sss", parameter="sd", temporal_resolution="winter")
    assert build_filename(spec, "ascii") == "sss_sd_winter_all.asc"


def test_filename_is_reproducible(projected_spec):
    rebuilt = VariableSpec(
        period="projected", variable="sst", parameter="mean",
        scenario="ssp245", time_selector=(2060, 2050),
    )
    assert build_filename(projected_spec, "csv") == build_filename(rebuilt, "csv")


def test_filenames_distinct_across_contexts():
    specs = [
        VariableSpec(period=period, variable=variable, parameter=parameter,
                     temporal_resolution=resolution, scenario=scenario, time_selector=selector)
        for variable, parameter, resolution, selector, (period, scenario) in itertools.product(
            ["sst", "air_temperature"],
            ["mean", "max"],
            ["range", "full"],
            [None, 2020, [2020, 2021], [2020, 2022]],
            [("historical", None), ("projected", "ssp126"), ("projected", "ssp585")],
        )
    ]
    names = {build_filename(spec, "netcdf") for spec in specs}
    assert len(names) == len(specs)


def test_step_filename(historical_spec):
    assert build_filename(historical_spec, "ascii", step=2020) == "sst_mean_yearly_2020_2020.asc"
    assert build_filename(historical_spec, "ascii", step=None) == build_filename(historical_spec, "ascii")


def test_unknown_format(historical_spec):
    with pytest.raises(ConfigurationError, match="Valid formats"):
        build_filename(historical_spec, "geojson")


# ----------------------------
# Serialization
# ----------------------------

def test_return_grid_without_saving(small_grid, tmp_path):
    out = serialize_grid(small_grid, "netcdf", tmp_path, save=False, return_object=True)
    assert out is small_grid
    assert list(tmp_path.iterdir()) == []


def test_return_table(small_grid):
    table = serialize_grid(small_grid, "csv", save=False, return_object=True)
    assert isinstance(table, pd.DataFrame)
    assert list(table.columns) == ["lon", "lat", "value"]
    assert len(table) == small_grid.values.size


def test_nothing_returned_by_default(small_grid, historical_spec, tmp_path):
    assert serialize_grid(small_grid, "csv", tmp_path, historical_spec) is None


def test_write_csv(small_grid, historical_spec, tmp_path):
    serialize_grid(small_grid, "csv", tmp_path / "out", historical_spec)

    path = tmp_path / "out" / "sst_mean_yearly_2020.csv"
    table = pd.read_csv(path)
    assert len(table) == 12
    np.testing.assert_allclose(table["value"], np.arange(12))


def test_write_pickle(small_grid, historical_spec, tmp_path):
    expected = serialize_grid(small_grid, "pickle", tmp_path, historical_spec, return_object=True)

    loaded = pd.read_pickle(tmp_path / "sst_mean_yearly_2020.pkl")
    pd.testing.assert_frame_equal(loaded, expected)


def test_write_netcdf(small_grid, historical_spec, tmp_path):
    serialize_grid(small_grid, "netcdf", tmp_path, historical_spec)

    with xr.open_dataset(tmp_path / "sst_mean_yearly_2020.nc") as ds:
        da = ds["sst_mean"]
        assert da.dims == ("y", "x")
        np.testing.assert_array_equal(da.values, small_grid.values)
        np.testing.assert_allclose(ds["y"].values, small_grid.y_coords)
        assert ds.attrs["crs"] == "EPSG:4326"


def test_write_netcdf_time_stack(stacked_grid, projected_spec, tmp_path):
    serialize_grid(stacked_grid, "netcdf", tmp_path, projected_spec)

    with xr.open_dataset(tmp_path / "sst_mean_yearly_2050-2060_ssp245.nc") as ds:
        da = ds["sst_mean"]
        assert da.dims == ("time", "y", "x")
        np.testing.assert_array_equal(da.isel(time=1).values, stacked_grid.values[:, :, 1])


def test_write_ascii(small_grid, historical_spec, tmp_path):
    serialize_grid(small_grid, "ascii", tmp_path, historical_spec)

    path = tmp_path / "sst_mean_yearly_2020.asc"
    header = path.read_text().splitlines()[:2]
    assert header[0].split() == ["ncols", "4"]
    assert header[1].split() == ["nrows", "3"]


def test_write_ascii_per_year(stacked_grid, projected_spec, tmp_path):
    serialize_grid(stacked_grid, "ascii", tmp_path, projected_spec)

    written = sorted(p.name for p in tmp_path.glob("*.asc"))
    assert written == [
        "sst_mean_yearly_2050-2060_ssp245_2020.asc",
        "sst_mean_yearly_2050-2060_ssp245_2021.asc",
    ]
    # the per-step names can be rebuilt from the request
    for year in stacked_grid.years:
        assert (tmp_path / build_filename(projected_spec, "ascii", step=year)).exists()


def test_ascii_nodata(historical_spec, tmp_path):
    values = np.array([[1.0, np.nan], [3.0, 4.0]])
    grid = Grid(values=values, x_min=0, x_max=2, y_min=0, y_max=2, cell_size_x=1, cell_size_y=1)
    serialize_grid(grid, "ascii", tmp_path, historical_spec)

    text = (tmp_path / "sst_mean_yearly_2020.asc").read_text()
    assert "-9999" in text


def test_saving_requires_destination(small_grid, historical_spec):
    with pytest.raises(ConfigurationError):
        serialize_grid(small_grid, "csv", None, historical_spec)


def test_sanitize_attrs():
    clean = _sanitize_attrs({"scale": np.float32(0.5), "count": np.int64(3), "note": None, "units": "degC"})
    assert clean == {"scale": 0.5, "count": 3, "units": "degC"}
    assert type(clean["scale"]) is float
    assert type(clean["count"]) is int


def test_export_netcdf_numpy_attrs(small_grid, tmp_path):
    ds = small_grid.to_dataarray(name="sst_mean").to_dataset()
    ds.attrs["note"] = None
    ds["sst_mean"].attrs["scale"] = np.float32(0.5)
    filepath = tmp_path / "attrs.nc"

    export_netcdf(ds, filepath)

    with xr.open_dataset(filepath) as out:
        assert "note" not in out.attrs
        assert out["sst_mean"].attrs["scale"] == 0.5
