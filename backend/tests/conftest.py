from __future__ import annotations

from typing import Any

import pytest

from commute_fairness.memo_cache import EngineCaches
from commute_fairness.settings import ProviderConfig
from fakes import OFFICE_A, OFFICE_B, OFFICE_C, directions_payload, leg


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig(api_key="test-key")


@pytest.fixture
def caches() -> EngineCaches:
    return EngineCaches()


@pytest.fixture
def three_office_routes() -> dict[str, Any]:
    return {
        OFFICE_A: directions_payload(leg("28 min", 1680, "12.4 km")),
        OFFICE_B: directions_payload(leg("22 min", 1320, "8.7 km")),
        OFFICE_C: directions_payload(leg("35 min", 2100, "15.2 km")),
    }
