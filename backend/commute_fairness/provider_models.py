"""Shapes for the subset of Google Maps payload fields the engine consumes.

Payloads are validated here at the boundary so the rest of the engine never
touches raw dicts. Unknown fields are ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class _Location(BaseModel):
    lat: float
    lng: float


class _Geometry(BaseModel):
    location: _Location


class GeocodeResult(BaseModel):
    geometry: _Geometry
    formatted_address: str | None = None


class GeocodeResponse(BaseModel):
    status: str
    results: list[GeocodeResult] = Field(default_factory=list)
    error_message: str | None = None


class TextValue(BaseModel):
    text: str
    value: float


class TimeValue(BaseModel):
    text: str | None = None
    value: int
    time_zone: str | None = None


class Leg(BaseModel):
    distance: TextValue
    duration: TextValue
    departure_time: TimeValue | None = None
    arrival_time: TimeValue | None = None


class DirectionsRoute(BaseModel):
    legs: list[Leg] = Field(..., min_length=1)
    summary: str | None = None

    @property
    def first_leg(self) -> Leg:
        return self.legs[0]


class DirectionsResponse(BaseModel):
    status: str
    routes: list[DirectionsRoute] = Field(default_factory=list)
    error_message: str | None = None
