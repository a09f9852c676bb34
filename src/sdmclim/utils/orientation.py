"""
Axis corrections that turn raw (lon, lat[, time]) arrays from the archive
into row-major north-up arrays.

Each product family stores its axes differently, so the correction is looked
up per provenance. Steps act on the two spatial axes only; a trailing time
axis is carried along untouched.
"""
import numpy as np

from sdmclim.io.catalog import Provenance


def _transpose(a: np.ndarray) -> np.ndarray:
    return np.swapaxes(a, 0, 1)


def _reverse_rows(a: np.ndarray) -> np.ndarray:
    return a[::-1, ...]


def _reverse_columns(a: np.ndarray) -> np.ndarray:
    return a[:, ::-1, ...]


def _mirror_horizontal(a: np.ndarray) -> np.ndarray:
    return np.flip(a, axis=1)


ORIENTATION_STEPS = {
    Provenance.PROJECTED: (_transpose, _reverse_rows),
    Provenance.HISTORICAL_SEASONAL: (_transpose, _reverse_columns, _mirror_horizontal),
    Provenance.HISTORICAL_YEARLY: (_transpose, _reverse_rows),
}


def orient(raw: np.ndarray, provenance: Provenance) -> np.ndarray:
    """Apply the orientation steps registered for ``provenance``."""
    raw = np.asarray(raw)
    if raw.ndim not in (2, 3):
        raise ValueError(f"Expected a 2D or 3D array, got {raw.ndim}D")

    out = raw
    for step in ORIENTATION_STEPS[provenance]:
        out = step(out)
    return np.ascontiguousarray(out)
