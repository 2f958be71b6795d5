"""Slot scoring.

A "great" mark is the baseline; an "if needed" mark is damped by a
per-event weight in [0, 1], so it is never worth more than a great mark.

Scores are summed as fractions of the weights' decimal values, so slots
whose scores tie on paper produce the same float and fall through to the
count tie-breaks. The ranking order does not depend on GREAT_WEIGHT's scale.
"""

from fractions import Fraction
from typing import Protocol

GREAT_WEIGHT = 1.0
DEFAULT_IF_NEEDED_WEIGHT = 0.75


class _WeightSource(Protocol):
    disable_if_needed: bool
    if_needed_weight: float | None


def effective_if_needed_weight(event: _WeightSource) -> float:
    if event.disable_if_needed:
        return 0.0
    if event.if_needed_weight is None:
        return DEFAULT_IF_NEEDED_WEIGHT
    return event.if_needed_weight


def _decimal(value: float) -> Fraction:
    # 0.6 is 3/5 here, not the nearest binary double
    return Fraction(str(value))


def exact_score(
    great_count: int,
    if_needed_count: int,
    if_needed_weight: float = DEFAULT_IF_NEEDED_WEIGHT,
) -> Fraction:
    great = _decimal(GREAT_WEIGHT)
    return great_count * great + if_needed_count * (_decimal(if_needed_weight) * great)


def score_slot(
    great_count: int,
    if_needed_count: int,
    if_needed_weight: float = DEFAULT_IF_NEEDED_WEIGHT,
) -> float:
    return float(exact_score(great_count, if_needed_count, if_needed_weight))
