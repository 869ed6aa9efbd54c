"""
Target-Margin Resolver - target profit percentage by event size and menu mode.

Breakpoints are piecewise-linear between guest-count knots and flat outside
the first/last knot.
"""

import logging
import math
from typing import Iterable, List, Mapping, Optional, Tuple

from app.models.pricing_config import TARGET_MODES, TargetPoint, default_revenue_targets

logger = logging.getLogger(__name__)

# Menu mode (request) -> revenue target mode (breakpoint table column)
MENU_TO_TARGET_MODE = {
    "winery": "our_food",
    "own_catering": "catering",
    "client_catering": "customer_catering",
}

DEFAULT_TARGETS = default_revenue_targets()


def resolve_mode(mode: Optional[str]) -> str:
    if mode in TARGET_MODES:
        return mode
    logger.debug("Unknown revenue target mode %r, using our_food", mode)
    return "our_food"


def target_mode_for_menu(menu_mode: str) -> str:
    return MENU_TO_TARGET_MODE.get(menu_mode, "our_food")


def _knots(points: Iterable[TargetPoint]) -> List[Tuple[float, float]]:
    knots = []
    for point in points:
        if math.isfinite(point.guests):
            pct = point.pct if math.isfinite(point.pct) else 0.0
            knots.append((point.guests, pct))
    return sorted(knots, key=lambda knot: knot[0])


def get_target_pct(
    guests: float,
    mode: str = "our_food",
    table: Optional[Mapping[str, List[TargetPoint]]] = None,
) -> float:
    """
    Interpolate the target margin for `guests` in `mode`.

    `table` maps each mode to its breakpoints; a mode missing from the table
    uses the built-in defaults.
    """
    mode = resolve_mode(mode)
    points = (table or {}).get(mode)
    if not points:
        points = DEFAULT_TARGETS[mode]
    knots = _knots(points)
    if not knots:
        return 0.0

    first_guests, first_pct = knots[0]
    if guests is None or not math.isfinite(guests) or guests <= first_guests:
        return first_pct
    last_guests, last_pct = knots[-1]
    if guests >= last_guests:
        return last_pct

    for (start, start_pct), (end, end_pct) in zip(knots, knots[1:]):
        if guests <= end:
            span = end - start
            if span <= 0:
                return end_pct
            return start_pct + (end_pct - start_pct) * (guests - start) / span
    return last_pct
