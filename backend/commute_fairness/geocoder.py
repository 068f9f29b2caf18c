from __future__ import annotations

from typing import Protocol

from .errors import GeocodingError, ProviderError, ProviderStatusError, ProviderTransportError
from .logging_utils import log_event
from .memo_cache import MemoCache
from .models import LatLng
from .provider_models import GeocodeResponse


class GeocodeProvider(Protocol):
    async def geocode(self, address: str) -> GeocodeResponse: ...


class Geocoder:
    def __init__(self, provider: GeocodeProvider, cache: MemoCache[LatLng]) -> None:
        self._provider = provider
        self._cache = cache

    async def geocode(self, address: str) -> LatLng:
        """Resolve ``address`` to coordinates, memoized on the literal string.

        No normalisation is applied: differently formatted spellings of the
        same place are separate cache entries.
        """
        cached = self._cache.get(address)
        if cached is not None:
            return cached

        try:
            payload = await self._provider.geocode(address)
        except ProviderStatusError as e:
            code = "geocode_no_results" if e.status == "ZERO_RESULTS" else "geocode_status_not_ok"
            raise GeocodingError(
                reason_code=code,
                message=f"Geocoding failed for address: {address} ({e.status})",
                details={"status": e.status},
                address=address,
            ) from e
        except ProviderTransportError as e:
            raise GeocodingError(
                reason_code="geocode_transport_failed",
                message=f"Geocoding request failed for address: {address}: {e}",
                address=address,
            ) from e
        except ProviderError as e:
            raise GeocodingError(
                reason_code="geocode_status_not_ok",
                message=f"Geocoding failed for address: {address}: {e}",
                address=address,
            ) from e

        if not payload.results:
            raise GeocodingError(
                reason_code="geocode_no_results",
                message=f"Geocoding returned no matches for address: {address}",
                address=address,
            )

        location = payload.results[0].geometry.location
        coords = self._cache.put(address, LatLng(lat=location.lat, lon=location.lng))
        log_event("geocoded", address=address, lat=coords.lat, lon=coords.lon)
        return coords
