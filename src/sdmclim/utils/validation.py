# sdmclim/utils/validation.py

from pathlib import Path
from typing import Union, Tuple

import numpy as np
import pandas as pd
from pyproj import CRS

from sdmclim.errors import ConfigurationError


def validate_crs(crs_input) -> CRS:
    """
    Parse a CRS input into a pyproj.CRS object with validation.

    Parameters
    ----------
    crs_input : str | int | pyproj.CRS
        CRS specification. Can be:
        - a pyproj.CRS object (returned as-is)
        - a string, e.g. "EPSG:4326" or "CRS:84"
        - an integer EPSG code, e.g. 4326

    Returns
    -------
    pyproj.CRS
        Validated CRS object.

    Raises
    ------
    ValueError
        If the input cannot be converted to a valid CRS.
    """
    if isinstance(crs_input, CRS):
        return crs_input

    if isinstance(crs_input, int):
        try:
            crs = CRS.from_epsg(crs_input)
        except Exception as e:
            raise ValueError(f"Invalid EPSG code {crs_input}: {e}") from e
        return crs

    if isinstance(crs_input, str):
        try:
            crs = CRS.from_user_input(crs_input)
        except Exception as e:
            raise ValueError(f"Invalid CRS string '{crs_input}': {e}") from e
        return crs

    raise TypeError(
        f"CRS must be a pyproj.CRS, string, or integer EPSG code, got {type(crs_input)}"
    )


def validate_resolution(res: Union[float, Tuple[float, float]]) -> Tuple[float, float]:
    """
    Validate and normalize resolution input.

    Parameters
    ----------
    res : float or tuple of two floats
        Cell size. If a single float is given, it is used for both axes.

    Returns
    -------
    (xres, yres) : tuple of floats

    Raises
    ------
    TypeError
        If input is not float or tuple of floats.
    ConfigurationError
        If any resolution value is non-positive.
    """
    if isinstance(res, (int, float, np.integer, np.floating)) and not isinstance(res, bool):
        xres = yres = float(res)
    elif isinstance(res, (tuple, list)):
        if len(res) != 2:
            raise ConfigurationError(f"Resolution tuple/list must have length 2, got {len(res)}")
        xres, yres = float(res[0]), float(res[1])
    else:
        raise TypeError(f"Resolution must be float or tuple of floats, got {type(res)}")

    if not (xres > 0 and yres > 0):
        raise ConfigurationError(f"Resolution values must be positive, got {(xres, yres)}")

    return xres, yres


def validate_bbox(bounds) -> Tuple[float, float, float, float]:
    """
    Validate a (minx, miny, maxx, maxy) extent.

    Accepts a 4-item sequence or a dict keyed ``minx/miny/maxx/maxy`` or
    ``west/south/east/north``. Degenerate extents (min == max) are allowed.
    """
    if isinstance(bounds, dict):
        key_sets = [
            ("minx", "miny", "maxx", "maxy"),
            ("west", "south", "east", "north"),
        ]
        for keys in key_sets:
            if all(k in bounds for k in keys):
                bounds = [bounds[k] for k in keys]
                break
        else:
            raise ConfigurationError(
                f"Bounds dict keys not recognized: {list(bounds.keys())}. "
                f"Expected one of: {key_sets}"
            )
    elif not isinstance(bounds, (list, tuple, np.ndarray)):
        raise TypeError(f"Bounds must be a sequence or dict, got {type(bounds)}")

    if len(bounds) != 4:
        raise ConfigurationError(f"Bounds must have 4 values, got {len(bounds)}")

    minx, miny, maxx, maxy = (float(v) for v in bounds)
    if not np.all(np.isfinite([minx, miny, maxx, maxy])):
        raise ConfigurationError(f"Bounds must be finite, got {(minx, miny, maxx, maxy)}")
    if minx > maxx or miny > maxy:
        raise ConfigurationError(f"Bounds are inverted: {(minx, miny, maxx, maxy)}")

    return minx, miny, maxx, maxy


def validate_radius(radius) -> float:
    """Buffer radius in meters; must be a positive number."""
    try:
        radius = float(radius)
    except (TypeError, ValueError) as e:
        raise TypeError(f"Radius must be a number, got {type(radius)}") from e
    if not radius > 0:
        raise ConfigurationError(f"Buffer radius must be positive, got {radius}")
    return radius


def validate_points(points, *, lon_col: str = "lon", lat_col: str = "lat") -> pd.DataFrame:
    """
    Validate a table of point observations.

    Accepts a DataFrame with lon/lat columns or an iterable of (lon, lat)
    pairs. Rows with missing coordinates are not allowed.
    """
    if isinstance(points, pd.DataFrame):
        df = points
    elif isinstance(points, (list, tuple, np.ndarray)):
        arr = np.asarray(points, dtype=float)
        if arr.size == 0:
            raise ConfigurationError("Point set is empty")
        if arr.ndim != 2 or arr.shape[1] != 2:
            raise ConfigurationError(f"Expected (n, 2) lon/lat pairs, got shape {arr.shape}")
        df = pd.DataFrame(arr, columns=[lon_col, lat_col])
    else:
        raise TypeError(f"Points must be a DataFrame or (lon, lat) pairs, got {type(points)}")

    missing = {lon_col, lat_col} - set(df.columns)
    if missing:
        raise ConfigurationError(f"Point table missing columns: {sorted(missing)}")

    if len(df) == 0:
        raise ConfigurationError("Point set is empty")

    if df[[lon_col, lat_col]].isna().any().any():
        raise ConfigurationError("Point coordinates contain missing values")

    return df


def validate_path(
    filepath,
    *,
    should_exist: bool | None = None,
    make_directory: bool = False,
) -> Path:
    """
    Validate and normalize a filesystem path.

    Parameters
    ----------
    filepath : str | Path
        Input path.
    should_exist : bool | None, optional
        - True  → path must already exist
        - False → path must NOT exist
        - None  → do not enforce existence
    make_directory : bool, optional
        If True, create the directory (and parents) if it does not exist.

    Returns
    -------
    Path
        Normalized Path object.
    """
    try:
        path = Path(filepath).expanduser()
    except Exception as e:
        raise TypeError(f"Invalid path input: {filepath!r}") from e

    exists = path.exists()

    if should_exist is True and not exists:
        raise ValueError(f"Path does not exist: {path}")

    if should_exist is False and exists:
        raise ValueError(f"Path already exists: {path}")

    if make_directory:
        if exists and not path.is_dir():
            raise ValueError(
                f"Cannot create directory; path exists and is not a directory: {path}"
            )
        path.mkdir(parents=True, exist_ok=True)

    return path


def validate_url(url: str, require_http: bool = True) -> str:
    """Strip and check a single URL."""
    if not isinstance(url, str):
        raise TypeError(f"URL must be a string, got {type(url)}: {url}")
    url = url.strip()
    if require_http and not (url.startswith("http://") or url.startswith("https://")):
        raise ValueError(f"Invalid URL: {url}")
    return url
