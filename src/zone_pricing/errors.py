"""Error taxonomy for zone resolution and pricing.

Only ``InvalidCoordinate`` is meant to reach API clients. The other errors are
raised inside a component and recovered by its caller, which logs them and
continues with a safe default. "No zone matched" is not an error: resolvers
return ``None``.
"""

from __future__ import annotations


class ZonePricingError(Exception):
    """Base class for engine errors."""


class InvalidCoordinate(ZonePricingError, ValueError):
    """Latitude/longitude missing, non-finite or out of range."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class PolygonParseError(ZonePricingError, ValueError):
    """Zone polygon geometry could not be parsed into a usable ring."""


class CacheUnavailable(ZonePricingError):
    """The shared cache tier could not serve a request."""


class PricingConfigMissing(ZonePricingError):
    """The pricing settings snapshot could not be loaded."""


class SpatialEngineFailure(ZonePricingError):
    """The geometry-aware query engine failed to answer."""
