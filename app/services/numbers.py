"""
Tolerant number handling for user-entered and configured values.

Every helper here degrades to a fallback instead of raising, because the
pricing engine is re-run on every edit and must never abort on a half-typed
value.
"""

import math
from typing import Any, Optional


def parse_number(value: Any, fallback: Optional[float] = 0.0) -> Optional[float]:
    """
    Parse a number from user or config input.

    Accepts ints, floats, numeric strings (with "," as decimal separator) and
    objects shaped like {"value": "12.5"}. Booleans, NaN and infinities are
    rejected. Returns `fallback` when nothing usable is found.
    """
    if isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        num = float(value)
        return num if math.isfinite(num) else fallback
    if isinstance(value, str):
        normalized = value.strip().replace(",", ".")
        if not normalized:
            return fallback
        try:
            num = float(normalized)
        except ValueError:
            return fallback
        return num if math.isfinite(num) else fallback
    if isinstance(value, dict) and isinstance(value.get("value"), str):
        return parse_number(value["value"], fallback)
    return fallback


def coerce_number(value: Any) -> float:
    """Strict variant used as a pydantic before-validator: raise on junk."""
    num = parse_number(value, None)
    if num is None:
        raise ValueError(f"not a number: {value!r}")
    return num


def clamp(num: float, min_value: float = -math.inf, max_value: float = math.inf) -> float:
    """Clamp `num` into [min_value, max_value]; non-finite input returns min_value."""
    if num is None or not math.isfinite(num):
        return min_value
    if num < min_value:
        return min_value
    if num > max_value:
        return max_value
    return num


def non_negative(num: float) -> float:
    return num if num > 0 else 0.0


def round_half_up(num: float) -> int:
    """Round .5 away from zero for positives (matches the calculator UI)."""
    return int(math.floor(num + 0.5))


def to_non_negative_int(value: Any, fallback: int = 0) -> int:
    num = parse_number(value, None)
    if num is None:
        return max(0, fallback)
    return max(0, round_half_up(num))


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0 when the denominator is not positive."""
    return numerator / denominator if denominator > 0 else 0.0


def to_ex_vat(amount_inc_vat: float, vat_rate: float) -> float:
    """Strip VAT from a VAT-inclusive amount."""
    divisor = 1 + (vat_rate if math.isfinite(vat_rate) else 0.0)
    return amount_inc_vat / divisor if divisor > 0 else amount_inc_vat
