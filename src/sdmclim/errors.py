"""
Error types raised by sdmclim.

Each failure kind of a grid fetch is its own class so callers can tell a bad
request apart from a network problem or a malformed file.
"""


class SdmClimError(Exception):
    """Base class for all sdmclim errors."""


class ConfigurationError(SdmClimError, ValueError):
    """Invalid period / variable / parameter / scenario combination or sampler arguments."""


class RetrievalError(SdmClimError):
    """Remote file could not be downloaded (connection failure, timeout, non-2xx status)."""


class ParseError(SdmClimError, ValueError):
    """Downloaded file is missing the expected field or uses an unsupported time encoding."""


class SelectionError(SdmClimError, LookupError):
    """Requested year is not present in the time coordinate."""


class SamplingError(SdmClimError, RuntimeError):
    """Background sampling could not place the requested number of points."""
