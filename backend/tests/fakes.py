from __future__ import annotations

import asyncio
from typing import Any

from commute_fairness.errors import ProviderStatusError, ProviderTransportError
from commute_fairness.models import LatLng
from commute_fairness.provider_models import DirectionsResponse, GeocodeResponse

APARTMENT = "Leopoldstraße 10, 80802 München"
OFFICE_A = "Office A"
OFFICE_B = "Office B"
OFFICE_C = "Office C"

COORDS: dict[str, tuple[float, float]] = {
    APARTMENT: (48.1590, 11.5850),
    OFFICE_A: (48.2650, 11.6710),
    OFFICE_B: (48.3990, 11.7230),
    OFFICE_C: (48.1170, 11.6030),
}


def leg(duration_text: str, duration_s: int, distance_text: str = "10.0 km") -> dict[str, Any]:
    return {
        "distance": {"text": distance_text, "value": 10_000},
        "duration": {"text": duration_text, "value": duration_s},
    }


def directions_payload(*legs: dict[str, Any], status: str = "OK") -> dict[str, Any]:
    return {"status": status, "routes": [{"legs": [lg]} for lg in legs]}


class FakeMaps:
    """In-memory stand-in for GoogleMapsClient keyed by address."""

    def __init__(
        self,
        *,
        coords: dict[str, tuple[float, float]] | None = None,
        routes: dict[str, Any] | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.coords = dict(COORDS if coords is None else coords)
        self.routes = routes if routes is not None else {}
        self.delays = delays or {}
        self.geocode_calls: list[str] = []
        self.directions_calls: list[dict[str, Any]] = []
        self.completion_order: list[str] = []

    def _address_for(self, place: LatLng | str) -> str:
        if isinstance(place, str):
            return place
        for address, (lat, lon) in self.coords.items():
            if (lat, lon) == (place.lat, place.lon):
                return address
        raise AssertionError(f"unknown coordinates {place!r}")

    async def geocode(self, address: str) -> GeocodeResponse:
        self.geocode_calls.append(address)
        if address not in self.coords:
            raise ProviderStatusError("ZERO_RESULTS")
        lat, lon = self.coords[address]
        return GeocodeResponse.model_validate(
            {"status": "OK", "results": [{"geometry": {"location": {"lat": lat, "lng": lon}}}]}
        )

    async def directions(
        self, *, origin: LatLng | str, destination: LatLng | str, departure_time: int
    ) -> DirectionsResponse:
        dest = self._address_for(destination)
        self.directions_calls.append(
            {"origin": self._address_for(origin), "destination": dest, "departure_time": departure_time}
        )
        await asyncio.sleep(self.delays.get(dest, 0.0))
        self.completion_order.append(dest)

        outcome = self.routes.get(dest)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            raise ProviderTransportError("ConnectError: no route configured")
        return DirectionsResponse.model_validate(outcome)
