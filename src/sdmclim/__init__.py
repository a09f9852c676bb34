import logging

from sdmclim.errors import ConfigurationError, ParseError, RetrievalError, SamplingError, SelectionError
from sdmclim.grids import BoundingBox, Grid
from sdmclim.io import GridFetcher, VariableSpec, fetch_grid, serialize_grid
from sdmclim.sampling import sample_background, thin_points

__version__ = "0.1.0"


class _SuppressGDALDriverWarnings(logging.Filter):
    """Drop GDAL chatter about driver deprecations and AAIGrid cell sizes."""

    _noise = ("'Memory' driver is deprecated", "non-square cells")

    def filter(self, record):
        message = record.getMessage()
        return not any(n in message for n in self._noise)


logging.getLogger('rasterio._env').addFilter(_SuppressGDALDriverWarnings())

__all__ = [
    "BoundingBox",
    "ConfigurationError",
    "Grid",
    "GridFetcher",
    "ParseError",
    "RetrievalError",
    "SamplingError",
    "SelectionError",
    "VariableSpec",
    "fetch_grid",
    "sample_background",
    "serialize_grid",
    "thin_points",
]
