"""Pydantic response models for zone lookup."""

from __future__ import annotations

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel

from .pricing import ZoneSummary


class Coordinates(BaseModel):
    lat: float
    lng: float


class ZoneLookupResponse(BaseModel):
    coordinates: Coordinates
    zone: Optional[ZoneSummary]
    is_supported: bool
    resolution_method: Literal["polygon_match", "none"]
    explanation: str
    source: str
    cached: bool
    resolved_at: dt.datetime
