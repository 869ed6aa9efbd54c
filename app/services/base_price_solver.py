"""
Base-Price Solver - minimum event-level top-up that reaches the target margin.

Inputs are the base aggregates (before add-ons and discount):
- F_c / F_w: food income / cost
- D_c / D_w: drinks + wine income / cost
- W_i / W_w: staffing + venue income / cost

Margin here is profit over base cost (revenue %), not over income.
"""

import logging
import math
from typing import List, Mapping, Optional

from app.models.pricing_config import TargetPoint
from app.models.quote import BasePriceResult
from app.services.margin_targets import get_target_pct, resolve_mode

logger = logging.getLogger(__name__)

DEGENERATE_NOTE = "Cannot compute basis price because total base expenses are not positive."
CORRECTION_EPSILON = 1e-6


def _finite(value: float) -> float:
    return value if value is not None and math.isfinite(value) else 0.0


def compute_base_price(
    guests: float,
    mode: str,
    F_c: float,
    F_w: float,
    D_c: float,
    D_w: float,
    W_i: float,
    W_w: float,
    targets: Optional[Mapping[str, List[TargetPoint]]] = None,
) -> BasePriceResult:
    """
    Solve for the base price `bp` so that (profit + bp) / base cost >= target.

    When the components already beat the target, `bp` is 0 and the excess is
    reported as `surplus`. A non-positive base cost cannot be solved and
    returns `bp = 0` with a note.
    """
    mode = resolve_mode(mode)
    guests = _finite(guests)
    F_c, F_w, D_c, D_w, W_i, W_w = (_finite(v) for v in (F_c, F_w, D_c, D_w, W_i, W_w))

    denom = F_w + D_w + W_w
    target_pct = max(0.0, get_target_pct(guests, mode, targets))
    profit = (F_c - F_w) + (D_c - D_w) + (W_i - W_w)
    revenue_pct_no_bp = profit / denom if denom > 0 else 0.0

    if not denom > 0:
        logger.debug("Base price skipped: base cost %.2f is not positive", denom)
        return BasePriceResult(
            bp=0.0,
            raw_bp=0.0,
            target_pct=target_pct,
            revenue_pct_no_bp=revenue_pct_no_bp,
            revenue_pct=revenue_pct_no_bp,
            denom=denom,
            profit_before_vat=profit,
            surplus=0.0,
            mode=mode,
            note=DEGENERATE_NOTE,
        )

    raw_bp = target_pct * denom - profit
    surplus = abs(raw_bp) if raw_bp < 0 else 0.0
    bp = max(0.0, raw_bp)
    revenue_pct = (profit + bp) / denom

    # One correction step for float drift, no iteration
    if bp > 0 and revenue_pct + CORRECTION_EPSILON < target_pct:
        bp += (target_pct - revenue_pct) * denom
        revenue_pct = (profit + bp) / denom

    if bp == 0:
        revenue_pct = revenue_pct_no_bp
    elif revenue_pct < target_pct:
        revenue_pct = target_pct

    return BasePriceResult(
        bp=bp,
        raw_bp=raw_bp,
        target_pct=target_pct,
        revenue_pct_no_bp=revenue_pct_no_bp,
        revenue_pct=revenue_pct,
        denom=denom,
        profit_before_vat=profit,
        surplus=surplus,
        mode=mode,
    )
