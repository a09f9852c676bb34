import numpy as np
import pandas as pd
import pytest

from sdmclim.errors import ConfigurationError, SamplingError
from sdmclim.sampling import BufferedRegion, sample_background


def test_buffered_region_contains_presences(presences):
    region = BufferedRegion.from_points(presences, 30_000)

    assert region.crs.is_projected
    assert region.contains(presences["lon"], presences["lat"]).all()
    # ~1° of latitude is ~111 km, well beyond the buffer
    assert not region.contains([-5.0], [51.0]).any()


def test_buffered_region_union_area(presences):
    single = BufferedRegion.from_points(presences.iloc[:1], 30_000)
    both = BufferedRegion.from_points(presences, 30_000)

    disk = np.pi * 30_000 ** 2
    assert single.geometry.area == pytest.approx(disk, rel=0.01)
    # overlapping disks: union is smaller than the sum
    assert disk < both.geometry.area < 2 * disk


def test_region_sample_inside(presences):
    region = BufferedRegion.from_points(presences, 30_000)
    sample = region.sample(500, np.random.default_rng(0))

    assert len(sample) == 500
    assert list(sample.columns) == ["lon", "lat"]
    # reprojection round trip can nudge points on the boundary
    assert region.contains(sample["lon"], sample["lat"]).mean() > 0.99


def test_end_to_end_background(presences):
    result = sample_background(presences, 30_000, 1000, 1.0, seed=123)

    assert len(result.raw) == 1000
    assert len(result.background) > 0
    assert len(result.candidates) >= len(result.background)
    assert result.region.contains(result.background["lon"], result.background["lat"]).all()


def test_background_is_deterministic(presences):
    a = sample_background(presences, 30_000, 1000, 1.0, seed=123)
    b = sample_background(presences, 30_000, 1000, 1.0, seed=123)

    pd.testing.assert_frame_equal(a.raw, b.raw)
    pd.testing.assert_frame_equal(a.background, b.background)


def test_background_points_are_cell_centers(presences):
    result = sample_background(presences, 50_000, 2000, 0.1, seed=5)
    grid = result.grid

    lon, lat = grid.center_of(result.candidates["row"], result.candidates["col"])
    np.testing.assert_allclose(result.candidates["lon"], lon)
    np.testing.assert_allclose(result.candidates["lat"], lat)

    # one candidate per occupied cell
    assert not result.candidates.duplicated(["row", "col"]).any()
    assert result.region.contains(result.background["lon"], result.background["lat"]).all()


def test_fine_grid_drops_centers_outside_buffer(presences):
    result = sample_background(presences, 30_000, 5000, 0.1, seed=9)

    inside = result.region.contains(result.candidates["lon"], result.candidates["lat"])
    assert len(result.background) == int(inside.sum())
    assert len(result.candidates) >= len(result.background)


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(radius=0, n_samples=10, resolution=1.0),
        dict(radius=-5, n_samples=10, resolution=1.0),
        dict(radius=1000, n_samples=0, resolution=1.0),
        dict(radius=1000, n_samples=10, resolution=0),
    ],
)
def test_background_bad_arguments(presences, kwargs):
    with pytest.raises(ConfigurationError):
        sample_background(presences, **kwargs)


def test_background_empty_presences():
    with pytest.raises(ConfigurationError):
        sample_background(pd.DataFrame({"lon": [], "lat": []}), 1000, 10, 1.0)


# ----------------------------
# Distant presences
# ----------------------------

@pytest.fixture
def distant_presences():
    # ~1000 km apart; 2 km disks cover a tiny share of their joint bounding box
    return pd.DataFrame({"lon": [-10.0, 2.0], "lat": [43.0, 51.0]})


def test_region_sample_splits_across_distant_disks(distant_presences):
    region = BufferedRegion.from_points(distant_presences, 2_000)
    assert len(region.polygons) == 2

    sample = region.sample(1000, np.random.default_rng(1))

    assert len(sample) == 1000
    near_west = (sample["lon"] < -4).sum()
    # equal areas, so roughly half each
    assert 350 < near_west < 650


def test_background_with_distant_presences(distant_presences):
    result = sample_background(distant_presences, 2_000, 1000, 0.01, seed=1)

    assert len(result.raw) == 1000
    assert len(result.background) > 0
    assert result.region.contains(result.background["lon"], result.background["lat"]).all()


def test_region_sample_exhausted(presences, mocker):
    mocker.patch("sdmclim.sampling.background.MAX_REJECTION_ROUNDS", 0)
    region = BufferedRegion.from_points(presences, 30_000)

    with pytest.raises(SamplingError, match="0 of 10"):
        region.sample(10, np.random.default_rng(0))
