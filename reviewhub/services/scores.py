from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

OVERALL_KEY = "overall"

_TWO_PLACES = Decimal("0.01")

# Scores with more integer digits than this are treated as garbage, not numbers.
_MAX_SCORE_DIGITS = 100


def parse_score(value: Any) -> Decimal | None:
    """Return ``value`` as a finite Decimal, or None when it is not a number.

    Booleans are rejected even though they are ints. Numeric strings are accepted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, int):
        dec = Decimal(value)
    elif isinstance(value, float):
        dec = Decimal(str(value))
    elif isinstance(value, str):
        try:
            dec = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not dec.is_finite():
        return None
    if dec and dec.adjusted() >= _MAX_SCORE_DIGITS:
        return None
    return dec


def round_half_away(value: Decimal, places: Decimal = _TWO_PLACES) -> Decimal:
    # ROUND_HALF_UP on Decimal rounds ties away from zero, for negatives too.
    with localcontext() as ctx:
        # quantize fails when the result needs more digits than the context holds
        needed = value.adjusted() - places.as_tuple().exponent + 2
        ctx.prec = max(ctx.prec, needed)
        return value.quantize(places, rounding=ROUND_HALF_UP)


def mean(values: list[Decimal]) -> Decimal:
    if not values:
        return Decimal(0)
    return round_half_away(sum(values, Decimal(0)) / len(values))
