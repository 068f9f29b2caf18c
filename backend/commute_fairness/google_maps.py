from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from .errors import ProviderError, ProviderStatusError, ProviderTransportError
from .models import LatLng
from .provider_models import DirectionsResponse, GeocodeResponse
from .settings import DIRECTIONS_URL, GEOCODE_URL, ProviderConfig, Settings

Place = LatLng | str


def _format_http_error(resp: httpx.Response) -> str:
    """Best-effort decode of Google JSON error payloads."""
    try:
        data = resp.json()
        if isinstance(data, dict):
            status = data.get("status")
            message = data.get("error_message")
            if status and message:
                return f"Google {resp.status_code} {status}: {message}"
            if status:
                return f"Google {resp.status_code} {status}"
    except ValueError:
        # fall through to text
        pass

    body = (resp.text or "").strip().replace("\n", " ")
    if len(body) > 240:
        body = body[:240] + "..."
    if body:
        return f"Google {resp.status_code}: {body}"
    return f"Google HTTP {resp.status_code}"


def _place_param(place: Place) -> str:
    if isinstance(place, LatLng):
        return place.as_param()
    return place


class GoogleMapsClient:
    """Thin async adapter over the Geocoding and Directions endpoints.

    Sole responsibility: talk HTTP, validate the payload shape and separate
    transport failures from provider-reported statuses. No caching, no retries.
    """

    def __init__(
        self,
        config: ProviderConfig,
        *,
        timeout_s: float = 30.0,
        connect_timeout_s: float = 5.0,
        geocode_url: str = GEOCODE_URL,
        directions_url: str = DIRECTIONS_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.geocode_url = geocode_url
        self.directions_url = directions_url
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s, connect=connect_timeout_s),
            headers={"accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, s: Settings, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> "GoogleMapsClient":
        return cls(
            ProviderConfig.from_settings(s),
            timeout_s=s.http_timeout_s,
            connect_timeout_s=s.http_connect_timeout_s,
            geocode_url=s.geocode_url,
            directions_url=s.directions_url,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, url: str, params: dict[str, str]) -> dict[str, Any]:
        try:
            resp = await self._client.get(url, params=params)
        except httpx.HTTPError as e:
            # httpx exceptions can stringify to "" (e.g. some timeouts), so include the type.
            msg = str(e).strip() or repr(e)
            raise ProviderTransportError(f"{type(e).__name__}: {msg}") from e

        if resp.status_code >= 400:
            raise ProviderTransportError(_format_http_error(resp))

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderTransportError(f"Google returned non-JSON body (HTTP {resp.status_code})") from e
        if not isinstance(data, dict):
            raise ProviderError("Google returned an unexpected payload")

        status = str(data.get("status") or "")
        if status != "OK":
            raise ProviderStatusError(status or "UNKNOWN", data.get("error_message"))
        return data

    async def geocode(self, address: str) -> GeocodeResponse:
        params = {
            "address": address,
            "key": self.config.api_key,
            "region": self.config.region,
            "language": self.config.language,
        }
        data = await self._get_json(self.geocode_url, params)
        try:
            payload = GeocodeResponse.model_validate(data)
        except ValidationError as e:
            raise ProviderError(f"invalid geocode payload: {e.error_count()} error(s)") from e
        return payload

    async def directions(
        self,
        *,
        origin: Place,
        destination: Place,
        departure_time: int,
    ) -> DirectionsResponse:
        params = {
            "origin": _place_param(origin),
            "destination": _place_param(destination),
            "mode": "transit",
            "departure_time": str(int(departure_time)),
            "key": self.config.api_key,
            "language": self.config.language,
            "region": self.config.region,
            "alternatives": "true",
            "units": "metric",
            "transit_mode": self.config.transit_modes,
            "transit_routing_preference": self.config.routing_preference,
        }
        data = await self._get_json(self.directions_url, params)
        try:
            payload = DirectionsResponse.model_validate(data)
        except ValidationError as e:
            raise ProviderError(f"invalid directions payload: {e.error_count()} error(s)") from e
        return payload
