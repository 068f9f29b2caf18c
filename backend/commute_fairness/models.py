from __future__ import annotations

import math
from typing import Literal

from pydantic import BaseModel, Field, field_validator

RouteStatus = Literal["completed", "error"]
FairnessLabel = Literal["Excellent", "Good", "Fair"]


class LatLng(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)

    def as_param(self) -> str:
        return f"{self.lat},{self.lon}"


class WeightedDestination(BaseModel):
    """A commute target; weight is its relative importance (e.g. trips per week)."""

    address: str = Field(..., min_length=1)
    weight: float = Field(default=1.0, gt=0)

    @field_validator("address")
    @classmethod
    def non_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("address must not be blank")
        return v

    @field_validator("weight")
    @classmethod
    def finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("weight must be finite")
        return v


class RouteEstimate(BaseModel):
    destination: str
    distance: str = ""
    duration: str = ""
    status: RouteStatus = "completed"
    weight: float = 1.0
    duration_minutes: int | None = None
    error: str | None = None


class FairnessResult(BaseModel):
    routes: list[RouteEstimate]
    mean_minutes: float
    # Integer mean, the value the listing store persists alongside the score.
    mean: int
    variance: float
    std_dev: float
    fairness_score: int = Field(..., ge=0, le=100)
    fairness_label: FairnessLabel
    completed_count: int = Field(..., ge=0)
    error_count: int = Field(..., ge=0)


class ScoreRequest(BaseModel):
    apartment_address: str | None = None
    destinations: list[WeightedDestination] | None = None


class DestinationListResponse(BaseModel):
    destinations: list[WeightedDestination]


class CacheStatsResponse(BaseModel):
    geocode: dict[str, int]
    routes: dict[str, int]
