from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Protocol

from .errors import GeocodingError, RoutingError
from .fairness import compute_fairness, fairness_label, parse_duration_minutes, round_half_up
from .geocoder import GeocodeProvider, Geocoder
from .logging_utils import bind_context, log_event, log_warning
from .memo_cache import EngineCaches
from .models import FairnessResult, LatLng, RouteEstimate, WeightedDestination
from .route_estimator import DirectionsProvider, RouteEstimator
from .settings import ProviderConfig


class CommuteScorer:
    """Scores one apartment against a destination set.

    Destinations are looked up concurrently (scatter), joined with a single
    ``gather`` and re-sequenced into input order. A destination that cannot be
    geocoded or routed becomes an ``error`` entry and is left out of the
    fairness math; configuration errors still abort the whole call.
    """

    def __init__(
        self,
        geocoder: Geocoder,
        estimator: RouteEstimator,
        *,
        concurrency: int = 8,
    ) -> None:
        self._geocoder = geocoder
        self._estimator = estimator
        self._concurrency = max(1, int(concurrency))

    async def _one(
        self,
        sem: asyncio.Semaphore,
        apartment_address: str,
        apartment_coords: LatLng,
        destination: WeightedDestination,
    ) -> RouteEstimate:
        async with sem:
            with bind_context(destination=destination.address):
                try:
                    dest_coords = await self._geocoder.geocode(destination.address)
                    route = await self._estimator.estimate_route(
                        apartment_coords,
                        dest_coords,
                        apartment_address,
                        destination.address,
                    )
                except (GeocodingError, RoutingError) as e:
                    log_warning("destination_failed", reason_code=e.reason_code, error=str(e))
                    return RouteEstimate(
                        destination=destination.address,
                        status="error",
                        weight=destination.weight,
                        error=str(e),
                    )

        return route.model_copy(
            update={
                "weight": destination.weight,
                "duration_minutes": parse_duration_minutes(route.duration),
            }
        )

    async def score_apartment(
        self,
        apartment_address: str,
        destinations: Sequence[WeightedDestination],
    ) -> FairnessResult:
        with bind_context(apartment=apartment_address):
            return await self._score(apartment_address, destinations)

    async def _score(
        self,
        apartment_address: str,
        destinations: Sequence[WeightedDestination],
    ) -> FairnessResult:
        t0 = time.perf_counter()

        # Fatal: nothing can be routed without an origin.
        apartment_coords = await self._geocoder.geocode(apartment_address)

        sem = asyncio.Semaphore(self._concurrency)
        routes = list(
            await asyncio.gather(
                *[self._one(sem, apartment_address, apartment_coords, d) for d in destinations]
            )
        )

        samples = [
            (float(r.duration_minutes or 0), r.weight) for r in routes if r.status == "completed"
        ]
        stats = compute_fairness(samples)
        error_count = sum(1 for r in routes if r.status == "error")

        result = FairnessResult(
            routes=routes,
            mean_minutes=round(stats.mean, 2),
            mean=round_half_up(stats.mean),
            variance=round(stats.variance, 4),
            std_dev=round(stats.std_dev, 4),
            fairness_score=stats.fairness_score,
            fairness_label=fairness_label(stats.fairness_score),
            completed_count=len(samples),
            error_count=error_count,
        )

        log_event(
            "apartment_scored",
            destination_count=len(routes),
            error_count=error_count,
            mean_minutes=result.mean_minutes,
            fairness_score=result.fairness_score,
            duration_ms=round((time.perf_counter() - t0) * 1000, 2),
        )
        return result


class MapsProvider(GeocodeProvider, DirectionsProvider, Protocol):
    pass


def build_scorer(
    provider: MapsProvider,
    config: ProviderConfig,
    caches: EngineCaches,
    *,
    concurrency: int = 8,
    clock: Callable[[], datetime] | None = None,
) -> CommuteScorer:
    return CommuteScorer(
        Geocoder(provider, caches.geocode),
        RouteEstimator(provider, caches.routes, config, clock=clock),
        concurrency=concurrency,
    )
