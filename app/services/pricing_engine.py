"""
Event Pricing Engine - Core business logic for pricing a winery event.

This engine implements the pricing rules:
- Guest floor and child-weighted (effective) guests
- Per-category cost/income: food, drinks, wine, staffing, venue, add-ons
- Base price top-up that enforces the target margin for the event size
- Discount, VAT and per-person price
- Breakdown rows shared by the summary and the export renderers

The engine is a pure function of (config snapshot, request): no I/O, no state.
"""

import logging
import math
from typing import Any, Dict, List, Tuple

from app.models.pricing_config import COLORS, SUPPLIERS, DrinkRates, PricingConfig, Venue, WorkerBracket
from app.models.quote import (
    AddonLine,
    AddonResult,
    BasePriceResult,
    BreakdownRow,
    GuestSummary,
    PricingComponent,
    QuoteRequest,
    QuoteResult,
    QuoteTotals,
    WineSummary,
)
from app.services.base_price_solver import compute_base_price
from app.services.margin_targets import target_mode_for_menu
from app.services.numbers import clamp, non_negative, safe_ratio, to_ex_vat
from app.services.wine_allocator import (
    baseline_bottles,
    distribute_by_ratio,
    merge_allocations,
    normalize_ratio,
    wine_financials,
)

logger = logging.getLogger(__name__)

COMPONENT_ORDER = ("venue", "menu", "drinks", "wine", "staff", "addons")

MENU_LABELS = {
    "winery": "Food - winery menu",
    "own_catering": "Food - catering by the winery",
    "client_catering": "Food - client brings catering",
}

ADDON_TYPE_LABELS = {
    "fixed": "Fixed price",
    "per_person": "Per person",
    "commission_per_person": "Commission per person",
    "commission_winery_fixed": "Vendor price + winery commission",
    "commission_winery_per_person": "Vendor price per person + winery commission",
}

ADDON_SOURCE_LABELS = {
    "winery": "Winery brings",
    "customer": "Customer brings",
}


class EventPricingEngine:
    """
    Prices one event from a config snapshot.

    Each compute_* method returns a PricingComponent whose `details` carry the
    base/extra split the base-price solver needs; `calculate` aggregates them.
    """

    def __init__(self, config: PricingConfig):
        self.config = config

    # ------------------------------------------------------------------
    # Guests / VAT
    # ------------------------------------------------------------------

    def effective_vat(self, request: QuoteRequest) -> float:
        """Request override when given and non-negative, else config, else 0.18."""
        if request.vat_rate is not None and request.vat_rate >= 0:
            return request.vat_rate
        if self.config.vat >= 0:
            return self.config.vat
        logger.debug("Negative configured VAT %s, using 0.18", self.config.vat)
        return 0.18

    def resolve_guests(self, request: QuoteRequest) -> GuestSummary:
        """Raise the head count to the configured minimum; the deficit goes to adults."""
        minimum = self.config.minimum_guests
        adults, children = request.adults, request.children
        entered = adults + children
        deficit = max(0, minimum - entered)
        adults += deficit
        child_factor = non_negative(self.config.child_factor)
        return GuestSummary(
            adults=adults,
            children=children,
            entered_total=entered,
            total_guests=adults + children,
            effective_guests=adults + child_factor * children,
            minimum_guests=minimum,
            child_factor=child_factor,
            raised_to_minimum=deficit > 0,
        )

    # ------------------------------------------------------------------
    # Food
    # ------------------------------------------------------------------

    def compute_food(self, request: QuoteRequest, guests: GuestSummary, vat_rate: float) -> PricingComponent:
        food_cfg = self.config.food
        menu = request.menu_mode
        base_cost = base_income = 0.0

        if menu == "winery":
            base_cost = food_cfg.winery.cost_ex_vat * guests.effective_guests
            base_income = to_ex_vat(food_cfg.winery.price_inc_vat, vat_rate) * guests.effective_guests
        elif menu == "own_catering":
            markup = food_cfg.catering_we_bring.markup_percent / 100
            per_guest = non_negative(request.catering_rate_ex_vat)
            base_cost = per_guest * guests.total_guests
            base_income = base_cost * (1 + markup)
        elif menu == "client_catering":
            base_income = food_cfg.catering_client_brings.fee_per_guest_ex_vat * guests.total_guests

        extras = self._apply_extras(request, guests, vat_rate)
        in_base = [e for e in extras if e["include_in_base"]]
        base_cost += sum(e["total_cost"] for e in in_base)
        base_income += sum(e["total_income"] for e in in_base)
        extra_cost = sum(e["total_cost"] for e in extras if not e["include_in_base"])
        extra_income = sum(e["total_income"] for e in extras if not e["include_in_base"])

        return PricingComponent(
            key="menu",
            label=MENU_LABELS[menu],
            cost=base_cost + extra_cost,
            income=base_income + extra_income,
            details={
                "menu_mode": menu,
                "extras": extras,
                "base_cost": base_cost,
                "base_income": base_income,
                "extra_cost": extra_cost,
                "extra_income": extra_income,
            },
        )

    def _apply_extras(self, request: QuoteRequest, guests: GuestSummary, vat_rate: float) -> List[Dict[str, Any]]:
        menu = request.menu_mode
        applied = []
        seen = set()
        for ref in request.food_extras:
            found = self.config.food.find_extra(ref)
            if not found:
                logger.debug("Unknown menu extra %r ignored", ref)
                continue
            key, extra = found
            if key in seen:
                continue
            seen.add(key)

            if extra.applies_to == "winery" and menu != "winery":
                continue
            if extra.applies_to == "catering" and menu == "winery":
                continue

            if extra.per_guest_mode == "per_event":
                quantity = 1.0
            elif extra.per_guest_mode == "total":
                quantity = float(guests.total_guests)
            else:
                quantity = guests.effective_guests
            if not quantity > 0:
                continue

            unit_income = to_ex_vat(extra.price_inc_vat, vat_rate)
            applied.append({
                "key": key,
                "id": extra.id or key,
                "label": extra.label or key,
                "quantity": quantity,
                "per_guest_mode": extra.per_guest_mode,
                "unit_cost": extra.cost_ex_vat,
                "unit_income": unit_income,
                "total_cost": extra.cost_ex_vat * quantity,
                "total_income": unit_income * quantity,
                "include_in_base": not extra.exclude_from_base,
            })
        return applied

    # ------------------------------------------------------------------
    # Drinks
    # ------------------------------------------------------------------

    def duration_rates(self, duration: str) -> DrinkRates:
        rates = self.config.drinks.rates_by_duration
        return rates.get(duration) or rates.get("short") or DrinkRates()

    def compute_drinks(self, request: QuoteRequest, guests: GuestSummary) -> PricingComponent:
        drinks_cfg = self.config.drinks
        defaults = self.duration_rates(request.duration)
        adults, children = guests.adults, guests.children

        rates = {
            "hot": non_negative(request.hot_rate if request.hot_rate is not None else defaults.hot),
            "cold": non_negative(request.cold_rate if request.cold_rate is not None else defaults.cold),
        }
        baseline_rates = {"hot": non_negative(defaults.hot), "cold": non_negative(defaults.cold)}
        enabled = {"hot": request.hot_drinks, "cold": request.cold_drinks}
        child_multiplier = {
            "hot": drinks_cfg.child_hot_multiplier,
            "cold": drinks_cfg.child_cold_multiplier,
        }
        units_cfg = {"hot": drinks_cfg.hot, "cold": drinks_cfg.cold}

        consumption = {"adults": {}, "children": {}, "baseline": {}, "extra": {}}
        split = {"baseline": {"cost": 0.0, "income": 0.0}, "extra": {"cost": 0.0, "income": 0.0}}
        total_cost = total_income = 0.0

        for kind in ("hot", "cold"):
            if enabled[kind]:
                adult_units = rates[kind] * adults
                child_units = rates[kind] * child_multiplier[kind] * children
                wanted_baseline = baseline_rates[kind] * (adults + child_multiplier[kind] * children)
            else:
                adult_units = child_units = wanted_baseline = 0.0
            units = adult_units + child_units
            baseline_units = min(units, wanted_baseline)
            extra_units = max(0.0, units - baseline_units)

            unit_cost = units_cfg[kind].cost_per_unit
            unit_price = units_cfg[kind].unit_price
            consumption["adults"][kind] = adult_units
            consumption["children"][kind] = child_units
            consumption["baseline"][kind] = baseline_units
            consumption["extra"][kind] = extra_units

            split["baseline"]["cost"] += baseline_units * unit_cost
            split["baseline"]["income"] += baseline_units * unit_price
            split["extra"]["cost"] += extra_units * unit_cost
            split["extra"]["income"] += extra_units * unit_price
            total_cost += units * unit_cost
            total_income += units * unit_price

        return PricingComponent(
            key="drinks",
            label="Drinks",
            cost=total_cost,
            income=total_income,
            details={
                "duration": request.duration,
                "included": enabled,
                "rates": rates,
                "baseline_rates": baseline_rates,
                "consumption": consumption,
                "base_cost": split["baseline"]["cost"],
                "base_income": split["baseline"]["income"],
                "extra_cost": split["extra"]["cost"],
                "extra_income": split["extra"]["income"],
            },
        )

    # ------------------------------------------------------------------
    # Wine
    # ------------------------------------------------------------------

    def compute_wine(
        self, request: QuoteRequest, guests: GuestSummary, vat_rate: float
    ) -> Tuple[PricingComponent, WineSummary]:
        baseline_cfg = self.config.wine.baseline
        tier = request.wine_tier
        adults = guests.adults

        bottles_needed = baseline_bottles(
            adults, baseline_cfg.guests_per_bottle, baseline_cfg.minimum_guests_for_all_types
        )
        required = distribute_by_ratio(
            bottles_needed,
            normalize_ratio(baseline_cfg.ratio.as_dict()),
            adults,
            baseline_cfg.minimum_guests_for_all_types,
        )
        auto = request.bottles is None
        actual = dict(required) if auto else request.bottles.as_dict()
        shortfall = {c: max(0, required[c] - actual[c]) for c in COLORS}
        extra = {c: max(0, actual[c] - required[c]) for c in COLORS}

        baseline_fin = wine_financials(required, tier, self.config, vat_rate)
        extra_fin = wine_financials(extra, tier, self.config, vat_rate)

        by_tier = {
            label: {
                "baseline_cost": baseline_fin["by_tier"][label]["cost"],
                "baseline_income": baseline_fin["by_tier"][label]["income"],
                "extra_cost": extra_fin["by_tier"][label]["cost"],
                "extra_income": extra_fin["by_tier"][label]["income"],
            }
            for label in SUPPLIERS
        }
        summary = WineSummary(
            tier=tier,
            auto=auto,
            required=_with_total(required),
            actual=_with_total(actual),
            shortfall=_with_total(shortfall),
            extra=_with_total(extra),
            allocation=merge_allocations(baseline_fin["allocation"], extra_fin["allocation"]),
            by_tier=by_tier,
        )

        tier_label = "mixed ULU / kosher" if tier == "mix" else (self.config.wine.tier(tier).label or tier)
        component = PricingComponent(
            key="wine",
            label=f"Wine ({tier_label})",
            cost=baseline_fin["cost"] + extra_fin["cost"],
            income=baseline_fin["income"] + extra_fin["income"],
            details={
                "tier": tier,
                "baseline_cost": baseline_fin["cost"],
                "baseline_income": baseline_fin["income"],
                "extra_cost": extra_fin["cost"],
                "extra_income": extra_fin["income"],
            },
        )
        return component, summary

    # ------------------------------------------------------------------
    # Staffing
    # ------------------------------------------------------------------

    def worker_count(self, total_guests: float, mode: str) -> float:
        matrix = self.config.staffing.worker_matrix
        if matrix:
            selected = self._select_worker_bracket(matrix, total_guests)
            workers = getattr(selected, mode, 0)
            if math.isfinite(workers) and workers > 0:
                return workers
        return 1.0

    @staticmethod
    def _select_worker_bracket(matrix: List[WorkerBracket], guests: float) -> WorkerBracket:
        for row in matrix:
            lower = row.min_guests if row.min_guests is not None else -math.inf
            upper = row.max_guests if row.max_guests is not None else math.inf
            if lower <= guests <= upper:
                return row
        ordered = sorted(matrix, key=lambda row: row.min_guests or 0)
        if guests < (ordered[0].min_guests or 0):
            return ordered[0]
        return ordered[-1]

    def compute_staffing(self, request: QuoteRequest, guests: GuestSummary) -> PricingComponent:
        staffing = self.config.staffing
        mode = "our_food" if request.menu_mode == "winery" else "catering"
        workers = self.worker_count(guests.total_guests, mode)
        manager = staffing.manager_bonus_ex_vat if request.include_manager else 0.0
        cost = manager + workers * staffing.worker_rate_ex_vat
        income = cost + staffing.revenue_component_ex_vat

        noun = "worker" if workers == 1 else "workers"
        label = f"Staff ({workers:g} {noun}{' + manager' if manager > 0 else ''})"
        return PricingComponent(
            key="staff",
            label=label,
            cost=cost,
            income=income,
            details={
                "mode": mode,
                "workers": workers,
                "worker_rate": staffing.worker_rate_ex_vat,
                "manager_cost": manager,
                "include_manager": request.include_manager,
                "revenue_component": staffing.revenue_component_ex_vat,
            },
        )

    # ------------------------------------------------------------------
    # Venue
    # ------------------------------------------------------------------

    def compute_venue(self, request: QuoteRequest, guests: GuestSummary) -> PricingComponent:
        key = request.venue_key
        venue = self.config.venue(key) if key else None
        if venue is None:
            if key:
                logger.debug("Unknown venue %r priced as zero", key)
            return PricingComponent(key="venue", label="Venue", cost=0.0, income=0.0, details={"venue_key": key})

        bracket = self._select_venue_bracket(venue, guests.total_guests)
        base_fee = venue.base_fee_ex_vat
        base_cost = venue.cost_ex_vat
        headcount_multiplier = 1.0
        if bracket is not None:
            if bracket.base_fee is not None:
                base_fee = bracket.base_fee
            if bracket.cost is not None:
                base_cost = bracket.cost
            if bracket.multiplier is not None:
                headcount_multiplier = bracket.multiplier

        time_cfg = self.config.time_multipliers
        time_multiplier = 1.0
        for flag in ("night", "shabbat", "holiday"):
            if getattr(request, flag):
                time_multiplier *= getattr(time_cfg, flag)

        multiplier = headcount_multiplier * venue.location_multiplier * time_multiplier
        fee = non_negative(base_fee) * multiplier
        cost = non_negative(base_cost) * multiplier

        label = venue.label or venue.key
        if multiplier != 1:
            label = f"{label} (x{multiplier:g})"
        return PricingComponent(
            key="venue",
            label=label,
            cost=non_negative(cost),
            income=non_negative(fee),
            details={
                "venue_key": venue.key,
                "venue_label": venue.label or venue.key,
                "multipliers": {
                    "headcount": headcount_multiplier,
                    "location": venue.location_multiplier,
                    "time": time_multiplier,
                    "total": multiplier,
                },
                "bracket_max_guests": bracket.max_guests if bracket else None,
            },
        )

    @staticmethod
    def _select_venue_bracket(venue: Venue, guests: float):
        if not venue.brackets:
            return None
        # Smallest limit first; an open-ended bracket sorts last
        ordered = sorted(
            venue.brackets,
            key=lambda b: (b.max_guests is None, b.max_guests if b.max_guests is not None else 0),
        )
        for bracket in ordered:
            if bracket.max_guests is None or guests <= bracket.max_guests:
                return bracket
        return ordered[-1]

    # ------------------------------------------------------------------
    # Add-ons
    # ------------------------------------------------------------------

    def price_addon(self, line: AddonLine, total_guests: int) -> AddonResult:
        rules = self.config.addons
        vendor = non_negative(line.price)
        quantity, price, cost, commission = 1.0, 0.0, 0.0, 0.0

        if line.type in ("commission_winery_fixed", "commission_winery_per_person"):
            if line.type == "commission_winery_per_person":
                quantity = float(total_guests)
            cost = vendor * quantity
            commission = cost * rules.winery_commission_rate
            price = cost + commission
        elif line.type == "commission_per_person":
            rate = clamp(vendor, rules.customer_commission_min, rules.customer_commission_max)
            quantity = float(total_guests)
            price = commission = rate * quantity
        elif line.type == "per_person":
            quantity = float(total_guests)
            price = commission = vendor * quantity
        else:
            price = commission = vendor

        return AddonResult(
            description=line.description,
            source=line.source,
            type=line.type,
            input_price=vendor,
            quantity=quantity,
            price=price,
            cost=cost,
            commission=commission,
        )

    def compute_addons(
        self, request: QuoteRequest, guests: GuestSummary
    ) -> Tuple[PricingComponent, List[AddonResult]]:
        lines = [self.price_addon(line, guests.total_guests) for line in request.addons]
        component = PricingComponent(
            key="addons",
            label="Add-ons",
            cost=sum(line.cost for line in lines),
            income=sum(line.price for line in lines),
            details={
                "count": len(lines),
                "winery_revenue": sum(line.commission for line in lines),
            },
        )
        return component, lines

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def calculate(self, request: QuoteRequest) -> QuoteResult:
        """
        Compute the full quote.

        Returns a QuoteResult with the components, the base price solve, the
        wine allocation, breakdown rows and totals.
        """
        vat_rate = self.effective_vat(request)
        guests = self.resolve_guests(request)

        venue = self.compute_venue(request, guests)
        food = self.compute_food(request, guests, vat_rate)
        drinks = self.compute_drinks(request, guests)
        wine, wine_summary = self.compute_wine(request, guests, vat_rate)
        staff = self.compute_staffing(request, guests)
        addons, addon_lines = self.compute_addons(request, guests)
        components = [venue, food, drinks, wine, staff, addons]

        target_mode = target_mode_for_menu(request.menu_mode)
        base_price = compute_base_price(
            guests=guests.total_guests,
            mode=target_mode,
            F_c=food.details["base_income"],
            F_w=food.details["base_cost"],
            D_c=drinks.details["base_income"] + wine.income,
            D_w=drinks.details["base_cost"] + wine.cost,
            W_i=staff.income + venue.income,
            W_w=staff.cost + venue.cost,
            targets=self.config.revenue_targets,
        )

        totals = self._totals(request, components, base_price, guests, vat_rate)
        logger.debug(
            "Quote %s guests (%s): subtotal %.2f, base price %.2f, final %.2f",
            guests.total_guests, request.menu_mode, totals.subtotal_income, base_price.bp, totals.final_income,
        )

        return QuoteResult(
            request=request,
            guests=guests,
            menu_mode=request.menu_mode,
            target_mode=target_mode,
            components=components,
            base_price=base_price,
            wine=wine_summary,
            addons=addon_lines,
            breakdown=build_breakdown(components, base_price),
            totals=totals,
        )

    @staticmethod
    def _totals(
        request: QuoteRequest,
        components: List[PricingComponent],
        base_price: BasePriceResult,
        guests: GuestSummary,
        vat_rate: float,
    ) -> QuoteTotals:
        subtotal_income = sum(c.income for c in components) + base_price.bp
        subtotal_cost = sum(c.cost for c in components)

        discount_amount = non_negative(request.discount_amount)
        discount_percent = min(non_negative(request.discount_percent), 100.0)
        discount_from_percent = subtotal_income * discount_percent / 100
        discount_total = min(discount_amount + discount_from_percent, subtotal_income)

        final_income = max(0.0, subtotal_income - discount_total)
        profit = final_income - subtotal_cost
        vat_amount = final_income * vat_rate
        total_with_vat = final_income + vat_amount

        return QuoteTotals(
            subtotal_income=subtotal_income,
            subtotal_cost=subtotal_cost,
            discount_amount=discount_amount,
            discount_percent=discount_percent,
            discount_from_percent=discount_from_percent,
            discount_total=discount_total,
            final_income=final_income,
            profit=profit,
            margin=safe_ratio(profit, final_income),
            vat_rate=vat_rate,
            vat_amount=vat_amount,
            total_with_vat=total_with_vat,
            per_person=safe_ratio(total_with_vat, guests.total_guests),
        )


def build_breakdown(components: List[PricingComponent], base_price: BasePriceResult) -> List[BreakdownRow]:
    """Base row first, then components in display order; empty rows are dropped."""
    rows = [_row("base", "Event base price", base_price.bp, 0.0)]
    by_key = {c.key: c for c in components}
    for key in COMPONENT_ORDER:
        component = by_key.get(key)
        if component is None or (component.income == 0 and component.cost == 0):
            continue
        rows.append(_row(component.key, component.label, component.income, component.cost))
    return rows


def _row(key: str, label: str, income: float, expense: float) -> BreakdownRow:
    profit = income - expense
    return BreakdownRow(
        key=key,
        label=label,
        income=income,
        expense=expense,
        profit=profit,
        margin_pct=profit / income if income else 0.0,
    )


def _with_total(counts: Dict[str, int]) -> Dict[str, int]:
    result = {color: int(counts.get(color, 0)) for color in COLORS}
    result["total"] = sum(result.values())
    return result


def calculate_quote(config: PricingConfig, request: QuoteRequest) -> QuoteResult:
    """Convenience wrapper: one engine, one quote."""
    return EventPricingEngine(config).calculate(request)
