from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from .errors import CommuteEngineError, ConfigurationError, GeocodingError
from .google_maps import GoogleMapsClient
from .logging_utils import bind_context, log_event, log_warning
from .memo_cache import EngineCaches
from .models import (
    CacheStatsResponse,
    DestinationListResponse,
    FairnessResult,
    ScoreRequest,
    WeightedDestination,
)
from .orchestrator import CommuteScorer, build_scorer
from .settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One cache bundle per process; entries live until shutdown.
    app.state.caches = EngineCaches()
    app.state.maps = None
    app.state.config_error = None
    try:
        app.state.maps = GoogleMapsClient.from_settings(settings)
    except ConfigurationError as e:
        # Start anyway: the error is reported on every scoring call.
        app.state.config_error = e
        log_warning("provider_not_configured", reason_code=e.reason_code, error=str(e))
    yield
    if app.state.maps is not None:
        await app.state.maps.aclose()


app = FastAPI(title="Roommate Commute Fairness", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def commute_scorer(request: Request) -> CommuteScorer:
    config_error: ConfigurationError | None = getattr(request.app.state, "config_error", None)
    if config_error is not None:
        raise HTTPException(status_code=500, detail=str(config_error))

    maps: GoogleMapsClient | None = getattr(request.app.state, "maps", None)
    caches: EngineCaches | None = getattr(request.app.state, "caches", None)
    if maps is None or caches is None:
        raise HTTPException(status_code=503, detail="Maps client not initialised")
    return build_scorer(maps, maps.config, caches, concurrency=settings.batch_concurrency)


ScorerDep = Annotated[CommuteScorer, Depends(commute_scorer)]


def score_request(req: ScoreRequest) -> ScoreRequest:
    # Listed before the scorer on /score so a blank address is a 400 even when
    # the provider is not configured.
    if not (req.apartment_address or "").strip():
        raise HTTPException(status_code=400, detail="Apartment address is required")
    return req


ScoreRequestDep = Annotated[ScoreRequest, Depends(score_request)]


def default_destinations() -> list[WeightedDestination]:
    try:
        return [WeightedDestination.model_validate(d) for d in settings.default_destinations]
    except ValidationError as e:
        raise ConfigurationError(
            reason_code="invalid_configuration",
            message=f"DEFAULT_DESTINATIONS is invalid: {e.error_count()} error(s)",
        ) from e


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "Backend is running. Visit /docs for the API UI.", "docs": "/docs"}


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/destinations", response_model=DestinationListResponse)
async def list_destinations() -> DestinationListResponse:
    try:
        return DestinationListResponse(destinations=default_destinations())
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(request: Request) -> CacheStatsResponse:
    caches: EngineCaches | None = getattr(request.app.state, "caches", None)
    if caches is None:
        raise HTTPException(status_code=503, detail="caches not initialised")
    return CacheStatsResponse(**caches.snapshot())


@app.post("/score", response_model=FairnessResult)
async def score_apartment(req: ScoreRequestDep, scorer: ScorerDep) -> FairnessResult:
    t0 = time.perf_counter()
    address = req.apartment_address or ""

    with bind_context(request_id=str(uuid.uuid4()), apartment=address):
        try:
            destinations = req.destinations if req.destinations is not None else default_destinations()
            result = await scorer.score_apartment(address, destinations)
        except GeocodingError as e:
            log_warning("apartment_geocode_failed", reason_code=e.reason_code, error=str(e))
            raise HTTPException(
                status_code=400,
                detail="Failed to geocode apartment address. Please check the address format.",
            ) from e
        except ConfigurationError as e:
            log_warning("score_request_misconfigured", reason_code=e.reason_code, error=str(e))
            raise HTTPException(status_code=500, detail=str(e)) from e
        except CommuteEngineError as e:
            log_warning("score_request_failed", reason_code=e.reason_code, error=str(e))
            raise HTTPException(status_code=502, detail=str(e)) from e

        log_event(
            "score_request",
            destination_count=len(destinations),
            error_count=result.error_count,
            fairness_score=result.fairness_score,
            duration_ms=round((time.perf_counter() - t0) * 1000, 2),
        )
    return result
