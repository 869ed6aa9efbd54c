"""
PricingConfig - the whole pricing configuration tree, as one immutable snapshot.

The admin side historically wrote several spellings of the same setting
(camelCase, `_exVAT` suffixes, values nested under `pricing.*`). Every accepted
spelling is mapped here to a single snake_case field, so the engine only ever
reads canonical names.

Numeric fields are tolerant: a value that cannot be parsed falls back to the
field default instead of failing validation.
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, Field, field_validator, model_validator

from app.models.base import Amount, TolerantModel, valid_list_entries, valid_mapping_entries
from app.services.numbers import round_half_up

COLORS = ("white", "rose", "red")
SUPPLIERS = ("ulu", "kosher")
TARGET_MODES = ("our_food", "catering", "customer_catering")

DEFAULT_WINE_RATIO = {"white": 0.4, "rose": 0.4, "red": 0.2}


def _aliases(*names: str) -> AliasChoices:
    return AliasChoices(*names)


# ============ WINE ============

class ColorValues(TolerantModel):
    white: Amount = 0.0
    rose: Amount = 0.0
    red: Amount = 0.0

    def get(self, color: str) -> float:
        return float(getattr(self, color, 0.0))


class WineRatio(TolerantModel):
    white: Amount = 0.4
    rose: Amount = 0.4
    red: Amount = 0.2

    def as_dict(self) -> Dict[str, float]:
        return {color: getattr(self, color) for color in COLORS}


class MixSplit(TolerantModel):
    ulu: Amount = 0.7
    kosher: Amount = 0.3


class WineBaseline(TolerantModel):
    guests_per_bottle: Amount = Field(
        5.0, validation_alias=_aliases("guests_per_bottle", "guestsPerBottle", "bottlePerAdults")
    )
    ratio: WineRatio = Field(default_factory=WineRatio, validation_alias=_aliases("ratio", "mix"))
    minimum_guests_for_all_types: Amount = Field(
        5.0, validation_alias=_aliases("minimum_guests_for_all_types", "minimumGuestsForAllTypes")
    )
    mix_split: MixSplit = Field(default_factory=MixSplit, validation_alias=_aliases("mix_split", "mixSplit"))


class WineTier(TolerantModel):
    key: str = ""
    label: str = ""
    cost_ex_vat: ColorValues = Field(
        default_factory=ColorValues, validation_alias=_aliases("cost_ex_vat", "cost_exVAT", "cost")
    )
    price_inc_vat: ColorValues = Field(
        default_factory=ColorValues, validation_alias=_aliases("price_inc_vat", "price_incVAT", "price")
    )


def _default_wine_tiers() -> Dict[str, WineTier]:
    return {
        "ulu": WineTier(
            key="ulu",
            label="ULU wines",
            cost_ex_vat=ColorValues(white=40, rose=40, red=55),
            price_inc_vat=ColorValues(white=145, rose=145, red=189),
        ),
        "kosher": WineTier(
            key="kosher",
            label="Kosher wines",
            cost_ex_vat=ColorValues(white=35, rose=35, red=35),
            price_inc_vat=ColorValues(white=145, rose=145, red=145),
        ),
    }


class WineConfig(TolerantModel):
    baseline: WineBaseline = Field(default_factory=WineBaseline, validation_alias=_aliases("baseline", "defaults"))
    tiers: Dict[str, WineTier] = Field(default_factory=_default_wine_tiers)

    @field_validator("tiers", mode="before")
    @classmethod
    def _valid_tiers(cls, v):
        return valid_mapping_entries(WineTier, v)

    def tier(self, key: str) -> WineTier:
        return self.tiers.get(key) or WineTier(key=key, label=key)


# ============ FOOD ============

class WineryMenu(TolerantModel):
    price_inc_vat: Amount = Field(181.0, validation_alias=_aliases("price_inc_vat", "price_incVAT"))
    cost_ex_vat: Amount = Field(46.0, validation_alias=_aliases("cost_ex_vat", "cost_exVAT", "costPerGuest"))


class MenuExtra(TolerantModel):
    id: str = ""
    label: str = ""
    price_inc_vat: Amount = Field(0.0, validation_alias=_aliases("price_inc_vat", "price_incVAT"))
    cost_ex_vat: Amount = Field(0.0, validation_alias=_aliases("cost_ex_vat", "cost_exVAT"))
    applies_to: str = Field("any", validation_alias=_aliases("applies_to", "appliesTo"))
    per_guest_mode: str = Field(
        "adult_equivalent", validation_alias=_aliases("per_guest_mode", "perGuestMode")
    )
    exclude_from_base: bool = Field(False, validation_alias=_aliases("exclude_from_base", "excludeFromBase"))


def _default_menu_extras() -> Dict[str, MenuExtra]:
    return {
        "quiches": MenuExtra(
            id="menu_extra_quiches", label="Quiches", price_inc_vat=33, cost_ex_vat=8,
            applies_to="winery", exclude_from_base=True,
        ),
        "pizza": MenuExtra(
            id="menu_extra_pizza", label="Pizza", price_inc_vat=25, cost_ex_vat=7,
            applies_to="winery", exclude_from_base=True,
        ),
        "snack": MenuExtra(
            id="menu_extra_snack", label="Morning snack for groups", price_inc_vat=88, cost_ex_vat=21,
            applies_to="winery", exclude_from_base=True,
        ),
    }


class CateringWeBring(TolerantModel):
    markup_percent: Amount = 15.0


class CateringClientBrings(TolerantModel):
    fee_per_guest_ex_vat: Amount = Field(
        40.0, validation_alias=_aliases("fee_per_guest_ex_vat", "fee_per_guest_exVAT")
    )


class FoodConfig(TolerantModel):
    winery: WineryMenu = Field(default_factory=WineryMenu)
    extras: Dict[str, MenuExtra] = Field(default_factory=_default_menu_extras)
    catering_we_bring: CateringWeBring = Field(default_factory=CateringWeBring)
    catering_client_brings: CateringClientBrings = Field(default_factory=CateringClientBrings)
    # Legacy location of the child factor; wins over children.factor when set
    child_food_factor: Optional[Amount] = None

    @field_validator("extras", mode="before")
    @classmethod
    def _valid_extras(cls, v):
        return valid_mapping_entries(MenuExtra, v)

    def find_extra(self, ref: str) -> Optional[tuple]:
        """Look an extra up by its config key or by its `id`."""
        if ref in self.extras:
            return ref, self.extras[ref]
        for key, extra in self.extras.items():
            if extra.id and extra.id == ref:
                return key, extra
        return None


# ============ DRINKS ============

class DrinkUnit(TolerantModel):
    cost_per_unit: Amount = Field(0.0, validation_alias=_aliases("cost_per_unit", "costPerUnit", "cost_exVAT"))
    price_per_unit: Optional[Amount] = Field(
        None, validation_alias=_aliases("price_per_unit", "pricePerUnit", "price_exVAT")
    )
    price_multiplier: Amount = Field(3.0, validation_alias=_aliases("price_multiplier", "priceMultiplier"))

    @property
    def unit_price(self) -> float:
        if self.price_per_unit:
            return self.price_per_unit
        return self.cost_per_unit * (self.price_multiplier or 3.0)


class DrinkRates(TolerantModel):
    hot: Amount = 0.0
    cold: Amount = 0.0


def _default_drink_rates() -> Dict[str, DrinkRates]:
    return {
        "short": DrinkRates(hot=1, cold=1),
        "medium": DrinkRates(hot=1.5, cold=1.5),
        "long": DrinkRates(hot=2, cold=2),
    }


class DrinksConfig(TolerantModel):
    hot: DrinkUnit = Field(default_factory=lambda: DrinkUnit(cost_per_unit=5.5, price_per_unit=17.6))
    cold: DrinkUnit = Field(default_factory=lambda: DrinkUnit(cost_per_unit=5.0, price_per_unit=17.0))
    child_hot_multiplier: Amount = Field(
        0.75, validation_alias=_aliases("child_hot_multiplier", "childHotMultiplier")
    )
    child_cold_multiplier: Amount = Field(
        1.0, validation_alias=_aliases("child_cold_multiplier", "childColdMultiplier")
    )
    rates_by_duration: Dict[str, DrinkRates] = Field(
        default_factory=_default_drink_rates,
        validation_alias=_aliases("rates_by_duration", "ratesByDuration", "counts_by_duration"),
    )

    @field_validator("rates_by_duration", mode="before")
    @classmethod
    def _valid_rates(cls, v):
        return valid_mapping_entries(DrinkRates, v)


# ============ STAFFING ============

class WorkerBracket(TolerantModel):
    min_guests: Optional[Amount] = Field(None, validation_alias=_aliases("min_guests", "minGuests"))
    max_guests: Optional[Amount] = Field(None, validation_alias=_aliases("max_guests", "maxGuests"))
    our_food: Amount = 1.0
    catering: Amount = 1.0

    @model_validator(mode="before")
    @classmethod
    def _expand_single_worker_count(cls, data: Any) -> Any:
        # Older tables carried one `workers` column for every menu mode
        if isinstance(data, dict) and "workers" in data:
            data = dict(data)
            data.setdefault("our_food", data["workers"])
            data.setdefault("catering", data["workers"])
        return data


def _default_worker_matrix() -> List[WorkerBracket]:
    return [
        WorkerBracket(min_guests=20, max_guests=39, our_food=1, catering=1),
        WorkerBracket(min_guests=40, max_guests=59, our_food=2, catering=2),
        WorkerBracket(min_guests=60, max_guests=79, our_food=3, catering=2),
        WorkerBracket(min_guests=80, max_guests=100, our_food=4, catering=3),
    ]


class StaffingConfig(TolerantModel):
    worker_rate_ex_vat: Amount = Field(
        550.0, validation_alias=_aliases("worker_rate_ex_vat", "workerRate_exVAT", "workerRate")
    )
    manager_bonus_ex_vat: Amount = Field(
        500.0,
        validation_alias=_aliases("manager_bonus_ex_vat", "managerBonus_exVAT", "event_manager_fee_exVAT"),
    )
    revenue_component_ex_vat: Amount = Field(
        100.0,
        validation_alias=_aliases("revenue_component_ex_vat", "revenueComponent_exVAT", "fixedRevenue_exVAT"),
    )
    worker_matrix: List[WorkerBracket] = Field(
        default_factory=_default_worker_matrix,
        validation_alias=_aliases("worker_matrix", "workerMatrix", "tiers"),
    )

    @field_validator("worker_matrix", mode="before")
    @classmethod
    def _valid_brackets(cls, v):
        return valid_list_entries(WorkerBracket, v)


# ============ REVENUE TARGETS ============

class TargetPoint(TolerantModel):
    guests: Amount
    pct: Amount = 0.0


# guests -> (our_food, catering, customer_catering)
_DEFAULT_TARGET_TABLE = {
    20: (0.67, 0.68, 0.48),
    30: (0.59, 0.68, 0.42),
    40: (0.57, 0.68, 0.39),
    50: (0.59, 0.68, 0.38),
    60: (0.59, 0.68, 0.38),
    70: (0.60, 0.68, 0.38),
    80: (0.58, 0.68, 0.30),
    100: (0.55, 0.68, 0.35),
}


def default_revenue_targets() -> Dict[str, List[TargetPoint]]:
    return {
        mode: [TargetPoint(guests=guests, pct=row[index]) for guests, row in _DEFAULT_TARGET_TABLE.items()]
        for index, mode in enumerate(TARGET_MODES)
    }


# ============ ADD-ONS ============

class AddonRules(TolerantModel):
    winery_commission_rate: Amount = Field(
        0.15, validation_alias=_aliases("winery_commission_rate", "wineryCommissionRate")
    )
    customer_commission_min: Amount = Field(
        10.0, validation_alias=_aliases("customer_commission_min", "customerCommissionMin")
    )
    customer_commission_max: Amount = Field(
        60.0, validation_alias=_aliases("customer_commission_max", "customerCommissionMax")
    )


# ============ VENUES ============

class VenueBracket(TolerantModel):
    max_guests: Optional[Amount] = Field(None, validation_alias=_aliases("max_guests", "maxGuests"))
    base_fee: Optional[Amount] = Field(None, validation_alias=_aliases("base_fee", "baseFee"))
    cost: Optional[Amount] = None
    multiplier: Optional[Amount] = None


class Venue(TolerantModel):
    key: str
    label: str = ""
    base_fee_ex_vat: Amount = Field(
        0.0, validation_alias=_aliases("base_fee_ex_vat", "baseFee_exVAT", "base_exVAT", "baseFee")
    )
    cost_ex_vat: Amount = Field(0.0, validation_alias=_aliases("cost_ex_vat", "cost_exVAT", "cost"))
    location_multiplier: Amount = Field(
        1.0, validation_alias=_aliases("location_multiplier", "locationMultiplier")
    )
    brackets: List[VenueBracket] = Field(default_factory=list)

    @field_validator("brackets", mode="before")
    @classmethod
    def _valid_brackets(cls, v):
        return valid_list_entries(VenueBracket, v)


def _default_venues() -> List[Venue]:
    return [
        Venue(key="inside", label="Inside"),
        Venue(key="outside", label="Outside"),
        Venue(key="lounge", label="Lounge"),
        Venue(key="combined", label="Outside + inside"),
    ]


class TimeMultipliers(TolerantModel):
    night: Amount = 1.0
    shabbat: Amount = 1.0
    holiday: Amount = 1.0


# ============ ROOT ============

class ChildrenConfig(TolerantModel):
    factor: Amount = 0.75


class EventsConfig(TolerantModel):
    minimum_guests: Amount = Field(20.0, validation_alias=_aliases("minimum_guests", "minimumGuests"))


class BrandingConfig(TolerantModel):
    internal_report_title: str = Field(
        "ULU Winery - internal pricing report",
        validation_alias=_aliases("internal_report_title", "internalReportTitle"),
    )
    footer_lines: List[str] = Field(default_factory=list, validation_alias=_aliases("footer_lines", "footerLines"))


class PricingConfig(TolerantModel):
    """Immutable snapshot of every pricing setting the engine reads."""

    vat: Amount = Field(0.18, validation_alias=_aliases("vat", "vat_rate", "vatRate"))
    children: ChildrenConfig = Field(default_factory=ChildrenConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    food: FoodConfig = Field(default_factory=FoodConfig)
    drinks: DrinksConfig = Field(default_factory=DrinksConfig)
    wine: WineConfig = Field(default_factory=WineConfig)
    staffing: StaffingConfig = Field(default_factory=StaffingConfig)
    revenue_targets: Dict[str, List[TargetPoint]] = Field(
        default_factory=default_revenue_targets,
        validation_alias=_aliases("revenue_targets", "revenueTargets"),
    )
    addons: AddonRules = Field(default_factory=AddonRules)
    venues: List[Venue] = Field(default_factory=_default_venues)
    time_multipliers: TimeMultipliers = Field(
        default_factory=TimeMultipliers, validation_alias=_aliases("time_multipliers", "timeMultipliers")
    )
    branding: BrandingConfig = Field(default_factory=BrandingConfig)

    @field_validator("revenue_targets", mode="before")
    @classmethod
    def _valid_target_tables(cls, v):
        # A bad knot only drops that knot; a mode left without knots gets its default table
        if not isinstance(v, dict):
            return v
        defaults = default_revenue_targets()
        tables = {}
        for mode, points in v.items():
            kept = valid_list_entries(TargetPoint, points) if isinstance(points, list) else []
            if not kept:
                if mode not in defaults:
                    continue
                kept = defaults[mode]
            tables[mode] = kept
        return tables

    @field_validator("venues", mode="before")
    @classmethod
    def _valid_venues(cls, v):
        return valid_list_entries(Venue, v)

    @model_validator(mode="before")
    @classmethod
    def _hoist_legacy_locations(cls, data: Any) -> Any:
        """Move settings that older configs kept under `pricing.*` to the root."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        pricing = data.pop("pricing", None)
        if isinstance(pricing, dict):
            venues = _venue_list(data.get("venues"))
            known = {v.get("key") for v in venues}
            base_fees = (pricing.get("venues") or {}).get("baseFees")
            for entry in _venue_list(base_fees) + _venue_list((pricing.get("place") or {}).get("venues")):
                if entry.get("key") not in known:
                    venues.append(entry)
                    known.add(entry.get("key"))
            if venues:
                data["venues"] = venues
            if "timeMultipliers" in pricing and "time_multipliers" not in data:
                data["time_multipliers"] = pricing["timeMultipliers"]
        elif "venues" in data:
            data["venues"] = _venue_list(data["venues"])
        return data

    @property
    def child_factor(self) -> float:
        if self.food.child_food_factor is not None:
            return self.food.child_food_factor
        return self.children.factor

    @property
    def minimum_guests(self) -> int:
        configured = self.events.minimum_guests
        return round_half_up(configured) if configured > 0 else 0

    def venue(self, key: str) -> Optional[Venue]:
        for venue in self.venues:
            if venue.key == key:
                return venue
        return None


def _venue_list(raw: Any) -> List[dict]:
    """Accept venues as a list of entries or as a {key: entry} mapping."""
    if isinstance(raw, list):
        return [dict(entry) for entry in raw if isinstance(entry, dict) and entry.get("key")]
    if isinstance(raw, dict):
        return [
            {**entry, "key": key}
            for key, entry in raw.items()
            if isinstance(entry, dict)
        ]
    return []
