"""Random selection primitives shared by the samplers."""

import math
import random
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import TypeVar

from .context import Diagnostics
from .errors import DegenerateWeightsError

T = TypeVar("T")


def weighted_choice(
    rng: random.Random,
    items: Sequence[T],
    weights: Sequence[float],
    diagnostics: Diagnostics | None = None,
    label: str = "items",
) -> T:
    """Draw one item with probability proportional to its weight.

    When every weight is zero the draw falls back to a uniform choice and a
    ``ZERO_WEIGHTS`` warning is recorded.

    Raises:
        DegenerateWeightsError: If ``items`` is empty, the sequences differ in
            length, or a weight is negative or not finite.
    """
    if not items:
        raise DegenerateWeightsError(f"Cannot sample from empty {label}")
    if len(items) != len(weights):
        raise DegenerateWeightsError(
            f"{len(items)} {label} but {len(weights)} weights"
        )
    for weight in weights:
        if weight < 0 or not math.isfinite(weight):
            raise DegenerateWeightsError(f"Invalid weight {weight} among {label}")

    total = math.fsum(weights)
    if total == 0:
        if diagnostics is not None:
            diagnostics.warn(
                "ZERO_WEIGHTS",
                f"All {len(items)} {label} have zero weight; choosing uniformly",
            )
        return items[rng.randrange(len(items))]

    target = rng.random() * total
    cumulative = 0.0
    chosen = None
    for item, weight in zip(items, weights, strict=True):
        if weight <= 0:
            continue
        chosen = item
        cumulative += weight
        if target < cumulative:
            break
    return chosen


def hard_spike_count(case_count: int, fraction: float) -> int:
    """Number of cases spiked under ``=<fraction>`` heritability."""
    product = Decimal(case_count) * Decimal(str(fraction))
    return int(product.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def select_hard_cases(rng: random.Random, case_ids: Sequence[str], fraction: float) -> set[str]:
    """Shuffle ``case_ids`` and take the first ``round(len * fraction)``."""
    shuffled = list(case_ids)
    rng.shuffle(shuffled)
    return set(shuffled[: hard_spike_count(len(shuffled), fraction)])
