"""
Static knowledge of the remote climate archive: which variables exist for
each period and how a request maps onto a remote file.
"""
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping

import numpy as np

from sdmclim.errors import ConfigurationError
from sdmclim.utils.constants import (
    DEFAULT_BASE_URL,
    PERIOD_HISTORICAL,
    PERIOD_PROJECTED,
    REMOTE_EXTENSION,
    RESOLUTION_FULL,
    RESOLUTION_RANGE,
    RESOLUTION_TOKENS,
    SEASONS,
    TIME_RESOLUTIONS,
)


@dataclass(frozen=True)
class CatalogConfig:
    variables: Mapping[str, frozenset]
    indicators: frozenset
    parameters: frozenset
    scenarios: frozenset
    resolutions: frozenset
    base_url: str = DEFAULT_BASE_URL
    extension: str = REMOTE_EXTENSION

    def __post_init__(self):
        frozen = {period: frozenset(names) for period, names in self.variables.items()}
        object.__setattr__(self, "variables", MappingProxyType(frozen))
        for name in ("indicators", "parameters", "scenarios", "resolutions"):
            object.__setattr__(self, name, frozenset(getattr(self, name)))
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @property
    def periods(self) -> tuple[str, ...]:
        return tuple(self.variables)

    def variables_for(self, period: str) -> frozenset:
        """Valid variable names for a period."""
        try:
            return self.variables[period]
        except KeyError:
            raise ConfigurationError(
                f"Unknown period '{period}'. Valid periods: {sorted(self.variables)}"
            ) from None

    def with_base_url(self, base_url: str) -> "CatalogConfig":
        return CatalogConfig(
            variables=self.variables,
            indicators=self.indicators,
            parameters=self.parameters,
            scenarios=self.scenarios,
            resolutions=self.resolutions,
            base_url=base_url,
            extension=self.extension,
        )


DEFAULT_CATALOG = CatalogConfig(
    variables={
        PERIOD_HISTORICAL: (
            "sst", "sss", "air_temperature", "precipitation", "heatwave", "coldwave",
        ),
        PERIOD_PROJECTED: (
            "sst", "sss", "air_temperature", "heatwave", "coldwave",
        ),
    },
    indicators=("heatwave", "coldwave"),
    parameters=("mean", "min", "max", "sd"),
    scenarios=("ssp126", "ssp245", "ssp370", "ssp585"),
    resolutions=(RESOLUTION_RANGE, RESOLUTION_FULL) + SEASONS,
)


def _normalize_selector(selector) -> frozenset | None:
    if selector is None:
        return None
    if isinstance(selector, bool):
        raise TypeError(f"Time selector must be a year or collection of years, got {selector!r}")
    if isinstance(selector, (int, np.integer, str)):
        return frozenset({int(selector)})
    if isinstance(selector, Iterable):
        years = frozenset(int(y) for y in selector)
        if not years:
            raise ConfigurationError("Time selector is an empty collection of years")
        return years
    raise TypeError(f"Time selector must be a year or collection of years, got {type(selector)}")


@dataclass(frozen=True)
class VariableSpec:
    """
    One request against the remote archive.

    ``time_selector`` may be a single year, any collection of years, or None
    for every available step. It is normalized to a frozenset of ints.
    """
    period: str
    variable: str
    parameter: str | None = None
    temporal_resolution: str = RESOLUTION_RANGE
    scenario: str | None = None
    time_selector: frozenset | None = field(default=None)

    def __post_init__(self):
        object.__setattr__(self, "time_selector", _normalize_selector(self.time_selector))

    @property
    def years(self) -> tuple[int, ...] | None:
        if self.time_selector is None:
            return None
        return tuple(sorted(self.time_selector))

    @property
    def single_year(self) -> int | None:
        if self.time_selector is not None and len(self.time_selector) == 1:
            return next(iter(self.time_selector))
        return None

    @property
    def has_time(self) -> bool:
        return self.temporal_resolution in TIME_RESOLUTIONS


class Provenance(Enum):
    """Product family of a remote file; decides axis orientation."""
    PROJECTED = "projected"
    HISTORICAL_SEASONAL = "historical_seasonal"
    HISTORICAL_YEARLY = "historical_yearly"

    @classmethod
    def of(cls, spec: VariableSpec) -> "Provenance":
        if spec.period == PERIOD_PROJECTED:
            return cls.PROJECTED
        if spec.temporal_resolution == RESOLUTION_RANGE:
            return cls.HISTORICAL_YEARLY
        return cls.HISTORICAL_SEASONAL


def validate_spec(spec: VariableSpec, catalog: CatalogConfig = DEFAULT_CATALOG) -> VariableSpec:
    """
    Check a request against the catalog. Runs before any network access.

    Raises
    ------
    ConfigurationError
        Naming the valid alternatives for whichever field is wrong.
    """
    valid_variables = catalog.variables_for(spec.period)
    if spec.variable not in valid_variables:
        raise ConfigurationError(
            f"Variable '{spec.variable}' is not available for period '{spec.period}'. "
            f"Valid variables: {sorted(valid_variables)}"
        )

    if spec.variable not in catalog.indicators:
        if spec.parameter is None:
            raise ConfigurationError(
                f"Variable '{spec.variable}' requires a parameter. "
                f"Valid parameters: {sorted(catalog.parameters)}"
            )
        if spec.parameter not in catalog.parameters:
            raise ConfigurationError(
                f"Unknown parameter '{spec.parameter}'. "
                f"Valid parameters: {sorted(catalog.parameters)}"
            )

    if spec.temporal_resolution not in catalog.resolutions:
        raise ConfigurationError(
            f"Unknown temporal resolution '{spec.temporal_resolution}'. "
            f"Valid resolutions: {sorted(catalog.resolutions)}"
        )

    if spec.period == PERIOD_PROJECTED:
        if spec.scenario is None:
            raise ConfigurationError(
                f"Projected data requires a scenario. Valid scenarios: {sorted(catalog.scenarios)}"
            )
        if spec.scenario not in catalog.scenarios:
            raise ConfigurationError(
                f"Unknown scenario '{spec.scenario}'. Valid scenarios: {sorted(catalog.scenarios)}"
            )
        if not spec.has_time:
            raise ConfigurationError(
                "Projected data is only packaged as time series; "
                f"use one of {sorted(TIME_RESOLUTIONS)}"
            )
    elif spec.scenario is not None:
        raise ConfigurationError(
            f"Scenario '{spec.scenario}' given for period '{spec.period}'; "
            f"scenarios only apply to '{PERIOD_PROJECTED}'"
        )

    if spec.time_selector is not None and not spec.has_time:
        raise ConfigurationError(
            f"Seasonal snapshot '{spec.temporal_resolution}' has no time dimension; "
            "drop the time selector"
        )

    return spec


def field_name(spec: VariableSpec, catalog: CatalogConfig = DEFAULT_CATALOG) -> str:
    """Name of the data variable inside the remote file."""
    if spec.variable in catalog.indicators:
        return spec.variable
    return f"{spec.variable}_{spec.parameter}"


def resolution_token(temporal_resolution: str) -> str:
    return RESOLUTION_TOKENS.get(temporal_resolution, temporal_resolution)


def build_locator(spec: VariableSpec, catalog: CatalogConfig = DEFAULT_CATALOG) -> str:
    """
    Remote URL for a validated spec.

    Historical files are split by temporal resolution; projected files hold
    every year of a scenario, so the year selection never appears in the path.
    """
    if spec.period == PERIOD_PROJECTED:
        path = f"{spec.period}/{spec.variable}/{spec.scenario}/{spec.variable}.{catalog.extension}"
    else:
        token = resolution_token(spec.temporal_resolution)
        path = f"{spec.period}/{spec.variable}/{spec.variable}_{token}.{catalog.extension}"
    return f"{catalog.base_url}/{path}"
