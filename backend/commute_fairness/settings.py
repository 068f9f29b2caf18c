from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

DeparturePolicy = Literal["now_plus_offset", "next_monday"]

_DEFAULT_TRANSIT_MODES = "bus|subway|train|tram|rail"

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"


def _default_destinations() -> list[dict[str, object]]:
    return [
        {"address": "Lichtenbergstraße 8, 85748 Garching bei München, Germany", "weight": 1.0},
        {
            "address": "TUM School of Life Sciences, Alte Akademie 8, 85354 Freising, Germany",
            "weight": 1.0,
        },
        {"address": "Cliniserve Gmbh, Werinherstraße 2, 81541 München, Germany", "weight": 1.0},
    ]


class Settings(BaseSettings):
    """Validated settings (env-driven), keeping config out of code for easy extension."""

    model_config = SettingsConfigDict(
        # Support both "repo root/.env" and "backend/.env" (local dev)
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    google_maps_api_key: str = Field(default="", alias="GOOGLE_MAPS_API_KEY")
    geocode_url: str = Field(default=GEOCODE_URL, alias="GOOGLE_GEOCODE_URL")
    directions_url: str = Field(default=DIRECTIONS_URL, alias="GOOGLE_DIRECTIONS_URL")

    # Applied uniformly to geocoding and routing requests.
    region_bias: str = Field(default="de", alias="REGION_BIAS")
    language_bias: str = Field(default="en", alias="LANGUAGE_BIAS")

    transit_modes: str = Field(default=_DEFAULT_TRANSIT_MODES, alias="TRANSIT_MODES")
    routing_preference: str = Field(default="fewer_transfers", alias="TRANSIT_ROUTING_PREFERENCE")

    departure_policy: DeparturePolicy = Field(default="now_plus_offset", alias="DEPARTURE_POLICY")
    departure_offset_min: int = Field(default=5, ge=0, le=24 * 60, alias="DEPARTURE_OFFSET_MIN")
    departure_hour: int = Field(default=8, ge=0, le=23, alias="DEPARTURE_HOUR")
    commute_tz: str = Field(default="Europe/Berlin", alias="COMMUTE_TZ")

    http_timeout_s: float = Field(default=30.0, ge=1.0, le=120.0, alias="HTTP_TIMEOUT_S")
    http_connect_timeout_s: float = Field(default=5.0, ge=0.5, le=60.0, alias="HTTP_CONNECT_TIMEOUT_S")

    # Per-request fan-out bound; destination sets are small so this rarely bites.
    batch_concurrency: int = Field(default=8, ge=1, le=64, alias="BATCH_CONCURRENCY")

    default_destinations: list[dict[str, object]] = Field(
        default_factory=_default_destinations,
        alias="DEFAULT_DESTINATIONS",
    )

    log_file: str = Field(default="", alias="LOG_FILE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("transit_modes")
    @classmethod
    def _normalise_transit_modes(cls, v: str) -> str:
        modes = [m.strip().lower() for m in str(v or "").replace(",", "|").split("|")]
        modes = [m for m in modes if m]
        return "|".join(modes) if modes else _DEFAULT_TRANSIT_MODES

    @model_validator(mode="after")
    def _strip_strings(self) -> "Settings":
        self.google_maps_api_key = self.google_maps_api_key.strip()
        self.region_bias = self.region_bias.strip().lower()
        self.language_bias = self.language_bias.strip().lower()
        return self


settings = Settings()


@dataclass(frozen=True)
class ProviderConfig:
    """Everything the provider-facing components need, resolved once."""

    api_key: str
    region: str = "de"
    language: str = "en"
    transit_modes: str = _DEFAULT_TRANSIT_MODES
    routing_preference: str = "fewer_transfers"
    departure_policy: DeparturePolicy = "now_plus_offset"
    departure_offset_min: int = 5
    departure_hour: int = 8
    commute_tz: str = "Europe/Berlin"

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ConfigurationError(
                reason_code="provider_credential_missing",
                message="Google Maps API key not configured (set GOOGLE_MAPS_API_KEY)",
            )

    @classmethod
    def from_settings(cls, s: Settings) -> "ProviderConfig":
        return cls(
            api_key=s.google_maps_api_key,
            region=s.region_bias,
            language=s.language_bias,
            transit_modes=s.transit_modes,
            routing_preference=s.routing_preference,
            departure_policy=s.departure_policy,
            departure_offset_min=s.departure_offset_min,
            departure_hour=s.departure_hour,
            commute_tz=s.commute_tz,
        )
