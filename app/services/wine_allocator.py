"""
Wine Allocator - bottle counts per colour and per supplier tier.

Two steps:
- distribute_by_ratio: total bottles -> {white, rose, red} by the configured ratio
  (floors, optional "one of each" guarantee, then largest remainder)
- split_by_tier: colour counts -> {ulu, kosher} per colour; "mix" balances a
  supplier share while keeping each supplier close to the colour ratio
"""

import math
from functools import cmp_to_key
from typing import Dict, Mapping, Optional

from app.models.pricing_config import COLORS, DEFAULT_WINE_RATIO, SUPPLIERS, PricingConfig
from app.services.numbers import clamp, round_half_up, to_ex_vat

# Tie-break when fractional parts are equal
COLOR_PRIORITY = {"rose": 3, "white": 2, "red": 1}
EPSILON = 1e-9


def normalize_ratio(ratio: Optional[Mapping]) -> Dict[str, float]:
    """
    Normalise a colour ratio to sum to 1.

    Falls back to 0.4/0.4/0.2 when the ratio is missing, has a negative or
    non-finite weight, or sums to zero.
    """
    weights = {}
    for color in COLORS:
        raw = ratio.get(color, 0) if ratio else None
        try:
            value = float(raw or 0)
        except (TypeError, ValueError):
            value = math.nan
        if not math.isfinite(value) or value < 0:
            weights = {}
            break
        weights[color] = value

    total = sum(weights.values())
    if not weights or total <= 0:
        weights = dict(DEFAULT_WINE_RATIO)
        total = sum(weights.values())
    return {color: weights[color] / total for color in COLORS}


def empty_counts() -> Dict[str, int]:
    return {color: 0 for color in COLORS}


def distribute_by_ratio(
    total_bottles: float,
    ratio: Optional[Mapping],
    adult_guests: float,
    minimum_guests_for_all_types: float = 5,
) -> Dict[str, int]:
    """
    Split `total_bottles` across colours.

    Colours with a zero weight never receive a bottle, and the counts always
    sum to the requested total.
    """
    total = max(0, round_half_up(total_bottles))
    result = empty_counts()
    if not total:
        return result

    weights = normalize_ratio(ratio)
    active = [color for color in COLORS if weights[color] > 0]
    exact = {color: weights[color] * total for color in active}

    for color in active:
        result[color] = int(math.floor(exact[color]))

    # Larger events get at least one bottle of every colour
    threshold = minimum_guests_for_all_types if minimum_guests_for_all_types > 0 else 5
    if adult_guests >= threshold and len(active) == 3 and total >= len(active):
        for color in active:
            if result[color] == 0:
                result[color] = 1
        _trim_overshoot(result, total)

    remaining = total - sum(result.values())
    if remaining > 0:
        fractions = {color: exact[color] - math.floor(exact[color]) for color in active}

        def by_fraction(a: str, b: str) -> int:
            diff = fractions[b] - fractions[a]
            if abs(diff) > EPSILON:
                return 1 if diff > 0 else -1
            return COLOR_PRIORITY[b] - COLOR_PRIORITY[a]

        ordered = sorted(active, key=cmp_to_key(by_fraction))
        for i in range(remaining):
            result[ordered[i % len(ordered)]] += 1

    return result


def _trim_overshoot(result: Dict[str, int], total: int) -> None:
    """Take back forced bottles from the largest colour (lowest priority first)."""
    while sum(result.values()) > total:
        candidates = [c for c in COLORS if result[c] > 1]
        if not candidates:
            break
        color = max(candidates, key=lambda c: (result[c], -COLOR_PRIORITY[c]))
        result[color] -= 1


def split_by_tier(
    color_counts: Mapping,
    tier_key: str,
    mix_split_ulu: float = 0.7,
    desired_ratio: Optional[Mapping] = None,
) -> Dict[str, Dict[str, int]]:
    """
    Split colour counts across suppliers.

    `kosher` sends everything to kosher, `mix` balances by `mix_split_ulu`,
    anything else sends everything to the house tier (ulu).
    """
    counts = {color: max(0, round_half_up(float(color_counts.get(color) or 0))) for color in COLORS}
    total = sum(counts.values())
    allocation = {label: dict(empty_counts(), total=0) for label in SUPPLIERS}
    if not total:
        return allocation

    if tier_key != "mix":
        label = "kosher" if tier_key == "kosher" else "ulu"
        for color in COLORS:
            allocation[label][color] = counts[color]
        allocation[label]["total"] = total
        return allocation

    share = mix_split_ulu if math.isfinite(mix_split_ulu) else 0.7
    ulu_target = int(clamp(round_half_up(total * share), 0, total))
    targets = {"ulu": ulu_target, "kosher": total - ulu_target}
    ratio = normalize_ratio(desired_ratio)

    for color in COLORS:
        for _ in range(counts[color]):
            label = _pick_supplier(allocation, targets, color, ratio[color])
            allocation[label][color] += 1
            allocation[label]["total"] += 1

    return allocation


def _pick_supplier(allocation, targets, color: str, desired_share: float) -> str:
    options = []
    for label in SUPPLIERS:
        target = targets[label]
        current = allocation[label]["total"]
        if target <= 0 or current >= target:
            continue
        current_share = allocation[label][color] / current if current > 0 else 0.0
        options.append((label, desired_share - current_share, target - current))

    if not options:
        return "kosher" if targets["kosher"] > allocation["kosher"]["total"] else "ulu"

    # Highest score first, then most remaining capacity; stable keeps ulu ahead on a full tie
    best = options[0]
    for option in options[1:]:
        score_diff = option[1] - best[1]
        if score_diff > EPSILON or (abs(score_diff) <= EPSILON and option[2] > best[2]):
            best = option
    return best[0]


def merge_allocations(*allocations: Mapping) -> Dict[str, Dict[str, int]]:
    merged = {label: dict(empty_counts(), total=0) for label in SUPPLIERS}
    for allocation in allocations:
        for label in SUPPLIERS:
            for key in (*COLORS, "total"):
                merged[label][key] += allocation[label][key]
    return merged


def baseline_bottles(adults: float, guests_per_bottle: float, minimum_guests_for_all_types: float = 5) -> int:
    """Bottles needed for `adults` drinkers; at least three once every colour is guaranteed."""
    per_bottle = guests_per_bottle if guests_per_bottle > 0 else 5
    bottles = math.ceil(adults / per_bottle) if adults > 0 else 0
    threshold = minimum_guests_for_all_types if minimum_guests_for_all_types > 0 else 5
    if adults >= threshold and bottles < 3:
        bottles = 3
    return bottles


def wine_financials(
    color_counts: Mapping,
    tier_key: str,
    config: PricingConfig,
    vat_rate: float,
) -> Dict:
    """Tier-split `color_counts` and price each supplier's share."""
    baseline_cfg = config.wine.baseline
    allocation = split_by_tier(
        color_counts,
        tier_key,
        mix_split_ulu=baseline_cfg.mix_split.ulu,
        desired_ratio=baseline_cfg.ratio.as_dict(),
    )

    by_tier = {label: {"cost": 0.0, "income": 0.0} for label in SUPPLIERS}
    counts = empty_counts()
    for label in SUPPLIERS:
        tier = config.wine.tier(label)
        for color in COLORS:
            count = allocation[label][color]
            counts[color] += count
            if count > 0:
                by_tier[label]["cost"] += tier.cost_ex_vat.get(color) * count
                by_tier[label]["income"] += to_ex_vat(tier.price_inc_vat.get(color), vat_rate) * count

    return {
        "counts": counts,
        "allocation": allocation,
        "cost": sum(entry["cost"] for entry in by_tier.values()),
        "income": sum(entry["income"] for entry in by_tier.values()),
        "by_tier": by_tier,
    }
