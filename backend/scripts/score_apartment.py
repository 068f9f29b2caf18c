from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from commute_fairness.errors import CommuteEngineError
from commute_fairness.google_maps import GoogleMapsClient
from commute_fairness.main import default_destinations
from commute_fairness.memo_cache import EngineCaches
from commute_fairness.models import WeightedDestination
from commute_fairness.orchestrator import MapsProvider, build_scorer
from commute_fairness.settings import ProviderConfig, settings


def parse_destination(raw: str) -> WeightedDestination:
    """``"address"`` or ``"address|weight"``."""
    address, sep, weight = raw.rpartition("|")
    if not sep:
        return WeightedDestination(address=raw)
    return WeightedDestination(address=address, weight=float(weight))


def destination_arg(raw: str) -> WeightedDestination:
    try:
        return parse_destination(raw)
    except ValueError as e:  # includes pydantic.ValidationError
        raise argparse.ArgumentTypeError(
            f"invalid destination {raw!r}: expected 'address' or 'address|weight' with weight > 0"
        ) from e


def _load_destinations(args: argparse.Namespace) -> list[WeightedDestination]:
    destinations: list[WeightedDestination] = []
    if args.destinations_json:
        data = json.loads(Path(args.destinations_json).read_text(encoding="utf-8"))
        destinations.extend(WeightedDestination.model_validate(d) for d in data)
    destinations.extend(args.destination)
    return destinations or default_destinations()


async def _score(
    args: argparse.Namespace,
    provider: MapsProvider | None,
) -> dict[str, Any]:
    config = ProviderConfig.from_settings(settings)
    if args.departure_policy:
        config = replace(config, departure_policy=args.departure_policy)

    client: GoogleMapsClient | None = None
    if provider is None:
        client = GoogleMapsClient(
            config,
            timeout_s=settings.http_timeout_s,
            connect_timeout_s=settings.http_connect_timeout_s,
            geocode_url=settings.geocode_url,
            directions_url=settings.directions_url,
        )
        provider = client

    scorer = build_scorer(provider, config, EngineCaches(), concurrency=settings.batch_concurrency)
    try:
        result = await scorer.score_apartment(args.address, _load_destinations(args))
    finally:
        if client is not None:
            await client.aclose()
    return result.model_dump()


def run_score(args: argparse.Namespace, *, provider: MapsProvider | None = None) -> dict[str, Any]:
    record = asyncio.run(_score(args, provider))
    if args.output:
        path = Path(args.output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(record, indent=2, ensure_ascii=False), encoding="utf-8")
    return record


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Score one apartment address by transit-commute fairness across destinations."
    )
    parser.add_argument("address", help="Apartment address to score.")
    parser.add_argument(
        "--destination",
        action="append",
        type=destination_arg,
        default=[],
        help="Destination address, optionally 'address|weight'. Repeatable.",
    )
    parser.add_argument("--destinations-json", default=None)
    parser.add_argument(
        "--departure-policy",
        choices=("now_plus_offset", "next_monday"),
        default=None,
    )
    parser.add_argument("--output", default=None)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        record = run_score(args)
    except CommuteEngineError as e:
        print(json.dumps({"error": str(e), "reason_code": e.reason_code}, indent=2))
        return 1
    except (OSError, ValueError) as e:
        # Unreadable or invalid --destinations-json.
        print(json.dumps({"error": str(e), "reason_code": "invalid_configuration"}, indent=2))
        return 1
    print(json.dumps(record, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
