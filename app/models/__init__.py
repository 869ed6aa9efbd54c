"""
Pydantic models for the winery pricing API.
The config tree and quote schemas share the tolerant TolerantModel base.
"""

from app.models.base import Amount, Count, TolerantModel
from app.models.pricing_config import (
    PricingConfig,
    WineTier,
    MenuExtra,
    DrinkUnit,
    WorkerBracket,
    TargetPoint,
    Venue,
    VenueBracket,
)
from app.models.quote import (
    QuoteRequest,
    AddonLine,
    ColorCounts,
    QuoteResult,
    PricingComponent,
    BasePriceResult,
    BreakdownRow,
)

__all__ = [
    "Amount",
    "Count",
    "TolerantModel",
    # Config
    "PricingConfig",
    "WineTier",
    "MenuExtra",
    "DrinkUnit",
    "WorkerBracket",
    "TargetPoint",
    "Venue",
    "VenueBracket",
    # Quotes
    "QuoteRequest",
    "AddonLine",
    "ColorCounts",
    "QuoteResult",
    "PricingComponent",
    "BasePriceResult",
    "BreakdownRow",
]
