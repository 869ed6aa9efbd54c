"""
Quote request and quote result schemas.

Requests are tolerant (enum-like strings are normalised, numeric junk degrades
to defaults); results are plain pydantic models produced by the pricing engine.
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from app.models.base import Amount, Count, TolerantModel

MENU_MODES = ("winery", "own_catering", "client_catering")
DURATIONS = ("short", "medium", "long")
WINE_TIERS = ("ulu", "kosher", "mix")
ADDON_SOURCES = ("winery", "customer")
ADDON_TYPES = (
    "fixed",
    "per_person",
    "commission_per_person",
    "commission_winery_fixed",
    "commission_winery_per_person",
)
CUSTOMER_ADDON_TYPES = ("fixed", "per_person", "commission_per_person")

_MENU_MODE_ALIASES = {
    "our_food": "winery",
    "winery_menu": "winery",
    "catering": "own_catering",
    "we_bring": "own_catering",
    "customer_catering": "client_catering",
    "client_brings": "client_catering",
}
_WINE_TIER_ALIASES = {"house": "ulu"}
_ADDON_TYPE_ALIASES = {
    "commission_fixed": "commission_winery_fixed",
    "winery_commission_fixed": "commission_winery_fixed",
    "winery_commission_per_person": "commission_winery_per_person",
    "perperson": "per_person",
}


def normalize_menu_mode(value: Any) -> str:
    key = str(value or "").strip().lower()
    key = _MENU_MODE_ALIASES.get(key, key)
    return key if key in MENU_MODES else "winery"


def normalize_wine_tier(value: Any) -> str:
    key = str(value or "").strip().lower()
    key = _WINE_TIER_ALIASES.get(key, key)
    return key if key in WINE_TIERS else "ulu"


def normalize_duration(value: Any) -> str:
    key = str(value or "").strip().lower()
    return key if key in DURATIONS else "short"


def normalize_addon_source(value: Any) -> str:
    key = str(value or "").strip().lower()
    return key if key in ADDON_SOURCES else "winery"


def normalize_addon_type(value: Any, source: str = "winery") -> str:
    """Map an add-on pricing type to a canonical one allowed for its source."""
    key = str(value or "").strip().lower().replace("-", "_")
    key = _ADDON_TYPE_ALIASES.get(key, key)
    if key not in ADDON_TYPES:
        key = "fixed"
    if source == "customer" and key not in CUSTOMER_ADDON_TYPES:
        return "commission_per_person"
    if source == "winery" and key == "commission_per_person":
        return "commission_winery_fixed"
    return key


# ============ REQUEST ============

class ColorCounts(TolerantModel):
    white: Count = 0
    rose: Count = 0
    red: Count = 0

    @property
    def total(self) -> int:
        return self.white + self.rose + self.red

    def as_dict(self) -> Dict[str, int]:
        return {"white": self.white, "rose": self.rose, "red": self.red}


class AddonLine(TolerantModel):
    """One add-on line: a fixed price, a per-person price or a commission input."""

    description: str = ""
    source: str = "winery"
    type: str = "fixed"
    price: Amount = Field(0.0, validation_alias=AliasChoices("price", "amount", "value", "unit_price"))

    @model_validator(mode="before")
    @classmethod
    def _normalize_type_for_source(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        source = normalize_addon_source(data.get("source"))
        raw_type = data.get("type") or data.get("pricing_type") or data.get("pricingType")
        data["source"] = source
        data["type"] = normalize_addon_type(raw_type, source)
        return data


class QuoteRequest(TolerantModel):
    """Guest counts and every selection that drives a quote."""

    adults: Count = 0
    children: Count = 0

    # Food
    menu_mode: str = Field("winery", validation_alias=AliasChoices("menu_mode", "menuMode", "menu_type"))
    catering_rate_ex_vat: Amount = Field(
        0.0, validation_alias=AliasChoices("catering_rate_ex_vat", "cateringRate", "catering_price_per_guest")
    )
    food_extras: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("food_extras", "menuExtras", "extras")
    )

    # Drinks
    duration: str = "short"
    hot_drinks: bool = Field(True, validation_alias=AliasChoices("hot_drinks", "hotEnabled"))
    cold_drinks: bool = Field(True, validation_alias=AliasChoices("cold_drinks", "coldEnabled"))
    hot_rate: Optional[Amount] = Field(None, validation_alias=AliasChoices("hot_rate", "hotRate"))
    cold_rate: Optional[Amount] = Field(None, validation_alias=AliasChoices("cold_rate", "coldRate"))

    # Wine
    wine_tier: str = Field("ulu", validation_alias=AliasChoices("wine_tier", "wineTier", "tier"))
    bottles: Optional[ColorCounts] = None

    # Staffing, venue
    include_manager: bool = Field(True, validation_alias=AliasChoices("include_manager", "includeManager"))
    venue_key: str = Field("", validation_alias=AliasChoices("venue_key", "venue", "place"))
    night: bool = False
    shabbat: bool = False
    holiday: bool = False

    addons: List[AddonLine] = Field(default_factory=list)

    # Discount / VAT
    discount_amount: Amount = Field(0.0, validation_alias=AliasChoices("discount_amount", "discountAmount"))
    discount_percent: Amount = Field(0.0, validation_alias=AliasChoices("discount_percent", "discountPercent"))
    discount_reason: str = Field("", validation_alias=AliasChoices("discount_reason", "discountReason"))
    vat_rate: Optional[Amount] = Field(None, validation_alias=AliasChoices("vat_rate", "vatRate", "vat"))

    # Metadata carried to summary / export
    client_name: str = Field("", validation_alias=AliasChoices("client_name", "clientName"))
    event_date: str = Field("", validation_alias=AliasChoices("event_date", "eventDate"))
    event_type: str = Field("", validation_alias=AliasChoices("event_type", "eventType"))

    @field_validator("menu_mode", mode="before")
    @classmethod
    def _menu_mode(cls, v):
        return normalize_menu_mode(v)

    @field_validator("wine_tier", mode="before")
    @classmethod
    def _wine_tier(cls, v):
        return normalize_wine_tier(v)

    @field_validator("duration", mode="before")
    @classmethod
    def _duration(cls, v):
        return normalize_duration(v)

    @field_validator("food_extras", mode="before")
    @classmethod
    def _food_extras(cls, v):
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        if isinstance(v, (list, tuple, set)):
            return [str(item) for item in v if item]
        return v


# ============ RESULT ============

class GuestSummary(BaseModel):
    adults: int
    children: int
    entered_total: int
    total_guests: int
    effective_guests: float
    minimum_guests: int
    child_factor: float
    raised_to_minimum: bool


class PricingComponent(BaseModel):
    key: str
    label: str
    cost: float
    income: float
    details: Dict[str, Any] = {}


class BasePriceResult(BaseModel):
    bp: float
    raw_bp: float
    target_pct: float
    revenue_pct_no_bp: float
    revenue_pct: float
    denom: float
    profit_before_vat: float
    surplus: float
    mode: str
    note: str = ""


class WineSummary(BaseModel):
    tier: str
    auto: bool
    required: Dict[str, int]
    actual: Dict[str, int]
    shortfall: Dict[str, int]
    extra: Dict[str, int]
    allocation: Dict[str, Dict[str, int]]
    by_tier: Dict[str, Dict[str, float]]


class AddonResult(BaseModel):
    description: str
    source: str
    type: str
    input_price: float
    quantity: float
    price: float
    cost: float
    commission: float


class BreakdownRow(BaseModel):
    key: str
    label: str
    income: float
    expense: float
    profit: float
    margin_pct: float


class QuoteTotals(BaseModel):
    subtotal_income: float
    subtotal_cost: float
    discount_amount: float
    discount_percent: float
    discount_from_percent: float
    discount_total: float
    final_income: float
    profit: float
    margin: float
    vat_rate: float
    vat_amount: float
    total_with_vat: float
    per_person: float


class QuoteResult(BaseModel):
    """Full computed breakdown of one quote."""

    request: QuoteRequest
    guests: GuestSummary
    menu_mode: str
    target_mode: str
    components: List[PricingComponent]
    base_price: BasePriceResult
    wine: WineSummary
    addons: List[AddonResult]
    breakdown: List[BreakdownRow]
    totals: QuoteTotals

    def component(self, key: str) -> Optional[PricingComponent]:
        for component in self.components:
            if component.key == key:
                return component
        return None
