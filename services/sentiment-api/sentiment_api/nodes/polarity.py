"""Node 3 — Polarity Resolver.

Turns the final positive/negative counts into a normalised score and a
ternary label.  Runs once per request, after every comment is aggregated.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from ..models import (
    SENTIMENT_NEGATIVE,
    SENTIMENT_NEUTRAL,
    SENTIMENT_POSITIVE,
    AggregationState,
    PolarityResult,
)
from ..timing import timed_node

EPSILON = 1e-6
_PRECISION = Decimal("0.001")


@timed_node("polarity", "scoring")
def finalize(state: AggregationState) -> PolarityResult:
    """Compute ``(pos - neg) / (eps + pos + neg)`` rounded to 3 decimals.

    ``EPSILON`` keeps the all-zero case at 0.0, which classifies Neutral.
    """
    positive, negative = state.positive_score, state.negative_score
    score = round_half_away(
        (positive - negative) / (EPSILON + positive + negative)
    )

    if score < 0:
        sentiment = SENTIMENT_NEGATIVE
    elif score > 0:
        sentiment = SENTIMENT_POSITIVE
    else:
        sentiment = SENTIMENT_NEUTRAL
    return PolarityResult(score=score, sentiment=sentiment)


def round_half_away(value: float) -> float:
    """Round to 3 decimal digits, halves away from zero (``round()`` would
    use banker's rounding)."""
    rounded = float(Decimal(repr(value)).quantize(_PRECISION, rounding=ROUND_HALF_UP))
    return rounded + 0.0  # normalise -0.0
