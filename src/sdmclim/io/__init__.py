from .catalog import DEFAULT_CATALOG, CatalogConfig, Provenance, VariableSpec, build_locator, validate_spec
from .fetch import GridFetcher, fetch_grid
from .export import build_filename, serialize_grid

__all__ = [
    "DEFAULT_CATALOG",
    "CatalogConfig",
    "Provenance",
    "VariableSpec",
    "build_locator",
    "validate_spec",
    "GridFetcher",
    "fetch_grid",
    "build_filename",
    "serialize_grid",
]
