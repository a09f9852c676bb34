"""
Decoding of CF-style time coordinates ("<unit> since <epoch>").

Only day and second offsets are used by the archive; anything else is
rejected rather than guessed.
"""
import re

import numpy as np
import pandas as pd

from sdmclim.errors import ParseError

_UNITS_PATTERN = re.compile(r"^\s*(?P<unit>\w+)\s+since\s+(?P<epoch>.+?)\s*$", re.IGNORECASE)

SUPPORTED_UNITS = {
    "days": "D",
    "day": "D",
    "seconds": "s",
    "second": "s",
}


def parse_time_units(units: str) -> tuple[str, pd.Timestamp]:
    """
    Split a time unit attribute into a pandas offset unit and its epoch.

    >>> parse_time_units("days since 2000-01-01")
    ('D', Timestamp('2000-01-01 00:00:00'))
    """
    if not isinstance(units, str):
        raise ParseError(f"Time coordinate has no usable 'units' attribute: {units!r}")

    match = _UNITS_PATTERN.match(units)
    if match is None:
        raise ParseError(f"Unrecognised time encoding '{units}'")

    unit = match.group("unit").lower()
    if unit not in SUPPORTED_UNITS:
        raise ParseError(
            f"Unsupported time unit '{unit}' in '{units}'. "
            f"Supported: days since <epoch>, seconds since <epoch>"
        )

    try:
        epoch = pd.Timestamp(match.group("epoch"))
    except (ValueError, TypeError) as e:
        raise ParseError(f"Cannot parse epoch in time encoding '{units}'") from e

    return SUPPORTED_UNITS[unit], epoch


def decode_years(offsets, units: str) -> np.ndarray:
    """Calendar year of every time step."""
    unit, epoch = parse_time_units(units)
    offsets = np.asarray(offsets, dtype="float64")
    times = epoch + pd.to_timedelta(offsets, unit=unit)
    return np.asarray(times.year, dtype=int)
