from .grid import BoundingBox, Grid, make_empty_grid

__all__ = ["BoundingBox", "Grid", "make_empty_grid"]
