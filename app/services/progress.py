"""Deterministic progress computation functions.

Pure functions with no external dependencies. Milestone progress is the share
of completed tasks; booking progress is the weight-normalized mean of its
milestones' progress. Both are integers in 0..100, rounded half-up.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping, Optional, Tuple, Union

from app.constants.constants import DEFAULT_MILESTONE_WEIGHT


@dataclass(frozen=True)
class ProgressChild:
    """One child's contribution to its parent's progress."""

    value: float
    weight: Optional[float] = DEFAULT_MILESTONE_WEIGHT


ChildLike = Union[ProgressChild, Tuple[float, Optional[float]], Mapping[str, Optional[float]]]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up, like SQL ROUND()."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def normalize_weight(weight: Optional[float]) -> float:
    """Weights that are missing, non-positive or not finite count as 1."""
    if weight is None:
        return DEFAULT_MILESTONE_WEIGHT
    try:
        weight = float(weight)
    except (TypeError, ValueError):
        return DEFAULT_MILESTONE_WEIGHT
    if not math.isfinite(weight) or weight <= 0:
        return DEFAULT_MILESTONE_WEIGHT
    return weight


def _clamp(percentage: int) -> int:
    return max(0, min(100, percentage))


def milestone_progress(completed: int, total: int) -> int:
    """Compute a milestone's progress (0-100) from its task counts.

    Returns 0 when the milestone has no tasks.
    """
    if total <= 0:
        return 0
    completed = max(0, min(completed, total))
    return _clamp(round_half_up(100 * completed / total))


def _as_child(child: ChildLike) -> ProgressChild:
    if isinstance(child, ProgressChild):
        return child
    if isinstance(child, Mapping):
        return ProgressChild(value=child.get("value") or 0, weight=child.get("weight"))
    value, weight = child
    return ProgressChild(value=value or 0, weight=weight)


def aggregate(children: Iterable[ChildLike]) -> int:
    """Weighted mean of child progress values, as an integer percentage.

    Args:
        children: ProgressChild items, (value, weight) pairs or
            {"value": ..., "weight": ...} mappings.

    Returns:
        Integer percentage 0-100; 0 when there are no children.

    Children with zero progress stay in the denominator.
    """
    total_weight = 0.0
    weighted_sum = 0.0
    for raw in children:
        child = _as_child(raw)
        weight = normalize_weight(child.weight)
        total_weight += weight
        weighted_sum += float(child.value) * weight

    if total_weight == 0:
        return 0

    return _clamp(round_half_up(weighted_sum / total_weight))
