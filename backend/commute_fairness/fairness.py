from __future__ import annotations

import math
import re
from collections.abc import Sequence
from dataclasses import dataclass

from .models import FairnessLabel

_HOUR_RE = re.compile(r"(\d+)\s*hour", re.IGNORECASE)
_MIN_RE = re.compile(r"(\d+)\s*min", re.IGNORECASE)


def parse_duration_minutes(text: str) -> int:
    """Minutes in a provider display string such as ``"1 hour 10 mins"``.

    Hours and minutes are both optional; text with neither parses to 0.
    """
    total = 0
    hours = _HOUR_RE.search(text or "")
    if hours:
        total += int(hours.group(1)) * 60
    minutes = _MIN_RE.search(text or "")
    if minutes:
        total += int(minutes.group(1))
    return total


@dataclass(frozen=True)
class FairnessStats:
    mean: float
    variance: float
    std_dev: float
    fairness_score: int


def weighted_mean(samples: Sequence[tuple[float, float]]) -> float:
    total_weight = sum(w for _d, w in samples)
    if total_weight <= 0:
        return 0.0
    return sum(d * w for d, w in samples) / total_weight


def weighted_variance(samples: Sequence[tuple[float, float]], mean: float) -> float:
    """Population variance, weighted."""
    total_weight = sum(w for _d, w in samples)
    if total_weight <= 0:
        return 0.0
    return sum(w * (d - mean) ** 2 for d, w in samples) / total_weight


def round_half_up(value: float) -> int:
    # .5 always goes up, never to the nearest even integer.
    return math.floor(value + 0.5)


def score_from_cv(coefficient_of_variation: float) -> int:
    return max(0, min(100, round_half_up(100 * (1 - coefficient_of_variation))))


def compute_fairness(samples: Sequence[tuple[float, float]]) -> FairnessStats:
    """Aggregate ``(minutes, weight)`` pairs into mean, spread and a 0-100 score.

    The score is ``100 * (1 - std_dev / mean)`` clamped to [0, 100]: equal
    commutes give 100 and a spread as large as the mean gives 0. With no
    samples, or a zero mean, the score is 0.
    """
    if not samples:
        return FairnessStats(mean=0.0, variance=0.0, std_dev=0.0, fairness_score=0)

    for _d, w in samples:
        if not (w > 0 and math.isfinite(w)):
            raise ValueError(f"weights must be positive and finite, got {w!r}")

    mean = weighted_mean(samples)
    variance = weighted_variance(samples, mean)
    std_dev = math.sqrt(variance)

    if mean <= 0:
        return FairnessStats(mean=mean, variance=variance, std_dev=std_dev, fairness_score=0)

    return FairnessStats(
        mean=mean,
        variance=variance,
        std_dev=std_dev,
        fairness_score=score_from_cv(std_dev / mean),
    )


def fairness_label(score: int) -> FairnessLabel:
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    return "Fair"
