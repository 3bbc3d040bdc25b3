"""
OKR progress computation: pure functions with no side effects.

Each key result is scored by linear interpolation between its start and
target values, clamped to 0-100, and objectives combine their key results
by weight. Invalid numbers are read as 0 and the result is always a float
in [0, 100].
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .utils import coerce_number, pick

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    if value != value:  # NaN
        return low
    return min(high, max(low, value))


def _field(kr: Any, attr: str, alias: str) -> float:
    if isinstance(kr, Mapping):
        return coerce_number(pick(kr, alias))
    return coerce_number(getattr(kr, attr, None))


def effective_weight(kr: Any) -> float:
    """Weight used for averaging; zero, negative or missing counts as 1."""
    weight = _field(kr, "weight", "kr_weight")
    return weight if weight > 0 else 1.0


def key_result_progress(kr: Any) -> float:
    """Return the key result's completion percentage.

    A key result whose target does not exceed its start value has no
    measurable range and scores 0.
    """
    start = _field(kr, "start_value", "kr_start")
    target = _field(kr, "target_value", "kr_target")
    current = _field(kr, "current_value", "kr_current")

    if target <= start:
        return 0.0
    return _clamp((current - start) / (target - start) * 100)


def objective_progress(key_results: Iterable[Any] | None) -> float:
    """Weighted mean of the key results' clamped progress.

    Logic
    -----
    total_weight = sum(effective_weight(kr))
    progress     = sum(key_result_progress(kr) * effective_weight(kr)) / total_weight

    Degenerate key results still count towards `total_weight`.
    """
    krs = list(key_results or [])
    if not krs:
        return 0.0

    total_weight = sum(effective_weight(kr) for kr in krs)
    if total_weight == 0:
        return 0.0

    weighted = sum(key_result_progress(kr) * effective_weight(kr) for kr in krs)
    return _clamp(weighted / total_weight)


def _key_results_of(objective: Any) -> Any:
    if isinstance(objective, Mapping):
        return pick(objective, "key_results", [])
    return getattr(objective, "key_results", [])


def overall_progress(objectives: Iterable[Any] | None) -> float:
    """Simple mean of per-objective progress; 0 when there are no objectives."""
    items = list(objectives or [])
    if not items:
        return 0.0

    scores = [objective_progress(_key_results_of(obj)) for obj in items]
    overall = sum(scores) / len(scores)
    logger.debug("OKR progress %.2f%% across %d objectives", overall, len(scores))
    return _clamp(overall)
