from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from commute_fairness.errors import GeocodingError, ProviderStatusError, ProviderTransportError, RoutingError
from commute_fairness.geocoder import Geocoder
from commute_fairness.memo_cache import EngineCaches
from commute_fairness.models import LatLng
from commute_fairness.provider_models import DirectionsResponse
from commute_fairness.route_estimator import RouteEstimator, select_best_route
from commute_fairness.settings import ProviderConfig
from fakes import APARTMENT, COORDS, OFFICE_A, OFFICE_B, FakeMaps, directions_payload, leg

FIXED_NOW = datetime(2026, 10, 21, 12, 0, tzinfo=timezone.utc)


class TransportFailingMaps(FakeMaps):
    async def geocode(self, address: str):  # noqa: ANN201
        self.geocode_calls.append(address)
        raise ProviderTransportError("ReadTimeout: timed out")


def test_geocode_is_memoized_per_literal_address(caches: EngineCaches) -> None:
    maps = FakeMaps(coords={**COORDS, "office a": COORDS[OFFICE_A]})
    geocoder = Geocoder(maps, caches.geocode)

    async def run() -> tuple[LatLng, LatLng, LatLng]:
        first = await geocoder.geocode(OFFICE_A)
        second = await geocoder.geocode(OFFICE_A)
        # Different spelling of the same place is a separate entry.
        third = await geocoder.geocode("office a")
        return first, second, third

    first, second, third = asyncio.run(run())

    assert first == second == third
    assert maps.geocode_calls == [OFFICE_A, "office a"]
    assert caches.geocode.snapshot()["size"] == 2
    assert caches.geocode.snapshot()["hits"] == 1


def test_geocode_zero_results_raises_with_address(caches: EngineCaches) -> None:
    geocoder = Geocoder(FakeMaps(), caches.geocode)
    with pytest.raises(GeocodingError) as exc:
        asyncio.run(geocoder.geocode("Nowhere 1"))
    assert exc.value.address == "Nowhere 1"
    assert exc.value.reason_code == "geocode_no_results"
    assert "Nowhere 1" not in caches.geocode


def test_geocode_transport_failure_is_distinct_reason(caches: EngineCaches) -> None:
    maps = TransportFailingMaps()
    geocoder = Geocoder(maps, caches.geocode)
    with pytest.raises(GeocodingError) as exc:
        asyncio.run(geocoder.geocode(OFFICE_A))
    assert exc.value.reason_code == "geocode_transport_failed"
    assert isinstance(exc.value.__cause__, ProviderTransportError)
    # No automatic retry.
    assert maps.geocode_calls == [OFFICE_A]


def test_select_best_route_picks_shortest_first_leg_and_first_wins_ties() -> None:
    payload = DirectionsResponse.model_validate(
        directions_payload(
            leg("40 min", 2400, "a"),
            leg("25 min", 1500, "b"),
            leg("25 min", 1500, "c"),
            leg("31 min", 1860, "d"),
        )
    )
    best = select_best_route(payload.routes)
    assert best.first_leg.distance.text == "b"


def _estimator(maps: FakeMaps, caches: EngineCaches, config: ProviderConfig) -> RouteEstimator:
    return RouteEstimator(maps, caches.routes, config, clock=lambda: FIXED_NOW)


def test_estimate_route_returns_display_strings_of_best_candidate(
    caches: EngineCaches, provider_config: ProviderConfig
) -> None:
    maps = FakeMaps(
        routes={OFFICE_A: directions_payload(leg("1 hour 10 mins", 4200, "31 km"), leg("52 mins", 3120, "27.5 km"))}
    )
    estimator = _estimator(maps, caches, provider_config)
    origin = LatLng(lat=COORDS[APARTMENT][0], lon=COORDS[APARTMENT][1])
    dest = LatLng(lat=COORDS[OFFICE_A][0], lon=COORDS[OFFICE_A][1])

    est = asyncio.run(estimator.estimate_route(origin, dest, APARTMENT, OFFICE_A))

    assert est.status == "completed"
    assert est.destination == OFFICE_A
    assert est.duration == "52 mins"
    assert est.distance == "27.5 km"
    assert maps.directions_calls[0]["departure_time"] == int(FIXED_NOW.timestamp()) + 300


def test_estimate_route_cache_is_keyed_by_ordered_labels(
    caches: EngineCaches, provider_config: ProviderConfig
) -> None:
    maps = FakeMaps(
        routes={
            OFFICE_A: directions_payload(leg("28 min", 1680)),
            APARTMENT: directions_payload(leg("30 min", 1800)),
        }
    )
    estimator = _estimator(maps, caches, provider_config)

    async def run() -> None:
        await estimator.estimate_route(APARTMENT, OFFICE_A, APARTMENT, OFFICE_A)
        await estimator.estimate_route(APARTMENT, OFFICE_A, APARTMENT, OFFICE_A)
        # Same labels short-circuit even with different underlying places.
        await estimator.estimate_route(
            LatLng(lat=0.0, lon=0.0), LatLng(lat=1.0, lon=1.0), APARTMENT, OFFICE_A
        )
        await estimator.estimate_route(OFFICE_A, APARTMENT, OFFICE_A, APARTMENT)

    asyncio.run(run())

    assert [c["destination"] for c in maps.directions_calls] == [OFFICE_A, APARTMENT]
    assert len(caches.routes) == 2


def test_labels_containing_the_separator_do_not_share_an_entry(
    caches: EngineCaches, provider_config: ProviderConfig
) -> None:
    maps = FakeMaps(
        routes={
            "C": directions_payload(leg("10 min", 600)),
            "B|C": directions_payload(leg("20 min", 1200)),
        }
    )
    estimator = _estimator(maps, caches, provider_config)

    async def run() -> tuple[str, str]:
        first = await estimator.estimate_route("A|B", "C", "A|B", "C")
        second = await estimator.estimate_route("A", "B|C", "A", "B|C")
        return first.duration, second.duration

    assert asyncio.run(run()) == ("10 min", "20 min")
    assert len(maps.directions_calls) == 2
    assert len(caches.routes) == 2


def test_cached_estimate_is_not_mutated_by_callers(
    caches: EngineCaches, provider_config: ProviderConfig
) -> None:
    maps = FakeMaps(routes={OFFICE_A: directions_payload(leg("28 min", 1680))})
    estimator = _estimator(maps, caches, provider_config)

    first = asyncio.run(estimator.estimate_route(APARTMENT, OFFICE_A, APARTMENT, OFFICE_A))
    first.weight = 5.0
    second = asyncio.run(estimator.estimate_route(APARTMENT, OFFICE_A, APARTMENT, OFFICE_A))
    assert second.weight == 1.0


@pytest.mark.parametrize(
    ("outcome", "reason_code"),
    [
        (ProviderStatusError("ZERO_RESULTS"), "route_no_candidates"),
        (ProviderStatusError("REQUEST_DENIED", "bad key"), "route_status_not_ok"),
        (ProviderTransportError("ConnectError: refused"), "route_transport_failed"),
        ({"status": "OK", "routes": []}, "route_no_candidates"),
    ],
)
def test_estimate_route_failures_carry_both_labels(
    caches: EngineCaches, provider_config: ProviderConfig, outcome: object, reason_code: str
) -> None:
    maps = FakeMaps(routes={OFFICE_B: outcome})
    estimator = _estimator(maps, caches, provider_config)

    with pytest.raises(RoutingError) as exc:
        asyncio.run(estimator.estimate_route(APARTMENT, OFFICE_B, APARTMENT, OFFICE_B))

    assert exc.value.reason_code == reason_code
    assert exc.value.origin == APARTMENT
    assert exc.value.destination == OFFICE_B
    assert len(caches.routes) == 0
