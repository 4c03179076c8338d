"""Route group exports."""

from . import health, pricing, zones

__all__ = ["health", "pricing", "zones"]
