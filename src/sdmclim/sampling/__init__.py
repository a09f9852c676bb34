from .stratified import build_cell_index, thin_points, thin_by_species
from .background import BackgroundSample, BufferedRegion, sample_background

__all__ = [
    "build_cell_index",
    "thin_points",
    "thin_by_species",
    "BackgroundSample",
    "BufferedRegion",
    "sample_background",
]
