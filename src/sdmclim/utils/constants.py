DEFAULT_CRS = "EPSG:4326"

PERIOD_HISTORICAL = "historical"
PERIOD_PROJECTED = "projected"

# temporal resolution keys as accepted from callers
RESOLUTION_RANGE = "range"
RESOLUTION_FULL = "full"
SEASONS = ("winter", "spring", "summer", "autumn")

# keys that map to a different token in remote paths and filenames
RESOLUTION_TOKENS = {
    RESOLUTION_RANGE: "yearly",
    RESOLUTION_FULL: "all",
}

# resolutions whose files carry a time dimension
TIME_RESOLUTIONS = frozenset({RESOLUTION_RANGE, RESOLUTION_FULL})

DEFAULT_BASE_URL = "https://climate-data.example.org/sdm"
REMOTE_EXTENSION = "nc"

DOWNLOAD_TIMEOUT = 1800  # seconds
DOWNLOAD_CHUNK_SIZE = 256 * 1024

LON_NAMES = ("lon", "longitude", "x")
LAT_NAMES = ("lat", "latitude", "y")
TIME_NAME = "time"

FORMAT_EXTENSIONS = {
    "netcdf": "nc",
    "ascii": "asc",
    "csv": "csv",
    "pickle": "pkl",
}
TABLE_FORMATS = frozenset({"csv", "pickle"})
