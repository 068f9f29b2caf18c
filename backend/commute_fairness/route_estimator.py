from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Protocol

from .departure import departure_timestamp
from .errors import ProviderError, ProviderStatusError, ProviderTransportError, RoutingError
from .logging_utils import log_event
from .memo_cache import MemoCache, route_cache_key
from .models import LatLng, RouteEstimate
from .provider_models import DirectionsResponse, DirectionsRoute
from .settings import ProviderConfig

Place = LatLng | str


class DirectionsProvider(Protocol):
    async def directions(
        self, *, origin: Place, destination: Place, departure_time: int
    ) -> DirectionsResponse: ...


def select_best_route(routes: Sequence[DirectionsRoute]) -> DirectionsRoute:
    """Candidate with the shortest first-leg duration; the first one wins ties."""
    if not routes:
        raise ValueError("no candidate routes")
    best = routes[0]
    for route in routes[1:]:
        if route.first_leg.duration.value < best.first_leg.duration.value:
            best = route
    return best


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RouteEstimator:
    def __init__(
        self,
        provider: DirectionsProvider,
        cache: MemoCache[RouteEstimate],
        config: ProviderConfig,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._config = config
        self._clock = clock or _utc_now

    async def estimate_route(
        self,
        origin: Place,
        destination: Place,
        origin_label: str,
        destination_label: str,
    ) -> RouteEstimate:
        # Keyed on labels, not coordinates, so a re-geocoded pair still hits.
        key = route_cache_key(origin_label, destination_label)
        cached = self._cache.get(key)
        if cached is not None:
            return cached.model_copy()

        departure_time = departure_timestamp(self._config, now=self._clock())

        try:
            payload = await self._provider.directions(
                origin=origin,
                destination=destination,
                departure_time=departure_time,
            )
        except ProviderStatusError as e:
            code = "route_no_candidates" if e.status == "ZERO_RESULTS" else "route_status_not_ok"
            raise RoutingError(
                reason_code=code,
                message=f"Directions returned status {e.status} for {origin_label} -> {destination_label}",
                details={"status": e.status},
                origin=origin_label,
                destination=destination_label,
            ) from e
        except ProviderTransportError as e:
            raise RoutingError(
                reason_code="route_transport_failed",
                message=f"Directions request failed for {origin_label} -> {destination_label}: {e}",
                origin=origin_label,
                destination=destination_label,
            ) from e
        except ProviderError as e:
            raise RoutingError(
                reason_code="route_payload_invalid",
                message=f"Directions payload invalid for {origin_label} -> {destination_label}: {e}",
                origin=origin_label,
                destination=destination_label,
            ) from e

        if not payload.routes:
            raise RoutingError(
                reason_code="route_no_candidates",
                message=f"No transit route found for {origin_label} -> {destination_label}",
                origin=origin_label,
                destination=destination_label,
            )

        best = select_best_route(payload.routes)
        leg = best.first_leg

        log_event(
            "route_selected",
            origin=origin_label,
            destination=destination_label,
            candidate_count=len(payload.routes),
            departure_time=departure_time,
            duration_s=leg.duration.value,
            duration_text=leg.duration.text,
            distance_text=leg.distance.text,
            leg_departure=leg.departure_time.value if leg.departure_time else None,
            leg_arrival=leg.arrival_time.value if leg.arrival_time else None,
        )

        estimate = RouteEstimate(
            destination=destination_label,
            distance=leg.distance.text,
            duration=leg.duration.text,
            status="completed",
        )
        return self._cache.put(key, estimate).model_copy()
