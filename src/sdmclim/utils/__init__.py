# src/sdmclim/utils/__init__.py
from .download import download_file

__all__ = ["download_file"]
