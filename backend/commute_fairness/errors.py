from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "provider_credential_missing",
        "invalid_configuration",
        "geocode_transport_failed",
        "geocode_status_not_ok",
        "geocode_no_results",
        "route_transport_failed",
        "route_status_not_ok",
        "route_no_candidates",
        "route_payload_invalid",
        "provider_transport_failed",
        "provider_status_not_ok",
        "engine_failure",
    }
)


def normalize_reason_code(reason_code: str, *, default: str = "engine_failure") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default


@dataclass
class CommuteEngineError(RuntimeError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        self.reason_code = normalize_reason_code(self.reason_code)

    def __str__(self) -> str:
        return self.message


@dataclass
class ConfigurationError(CommuteEngineError):
    """Credential or configuration missing; fatal for the call, never retried."""


@dataclass
class GeocodingError(CommuteEngineError):
    address: str = ""


@dataclass
class RoutingError(CommuteEngineError):
    origin: str = ""
    destination: str = ""


class ProviderError(RuntimeError):
    pass


class ProviderTransportError(ProviderError):
    """Network / HTTP level failure talking to the provider."""

    pass


class ProviderStatusError(ProviderError):
    """The provider answered but reported a non-OK status."""

    def __init__(self, status: str, message: str | None = None) -> None:
        self.status = status
        self.provider_message = message
        detail = f"provider status={status}"
        if message:
            detail = f"{detail} message={message}"
        super().__init__(detail)
