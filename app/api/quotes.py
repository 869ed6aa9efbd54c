"""
Quote endpoints - run the pricing engine on a quote request.

Every call prices from the current config snapshot; nothing is stored.
"""

from fastapi import APIRouter

from app.api.deps import PricingConfigDep, SettingsDep
from app.models.quote import QuoteRequest, QuoteResult
from app.services.pricing_engine import EventPricingEngine
from app.services.quote_export import ExportTable, build_export_rows
from app.services.quote_summary import QuoteSummary, build_summary

router = APIRouter()


@router.post("/calculate", response_model=QuoteResult)
async def calculate_quote(body: QuoteRequest, config: PricingConfigDep):
    """Full itemized quote: components, base price solve, breakdown and totals."""
    return EventPricingEngine(config).calculate(body)


@router.post("/summary", response_model=QuoteSummary)
async def quote_summary(body: QuoteRequest, config: PricingConfigDep, settings: SettingsDep):
    """Client-facing display strings for a quote."""
    result = EventPricingEngine(config).calculate(body)
    return build_summary(result, settings.currency_symbol)


@router.post("/export-rows", response_model=ExportTable)
async def quote_export_rows(body: QuoteRequest, config: PricingConfigDep, settings: SettingsDep):
    """Rows consumed by the PDF / spreadsheet renderers."""
    result = EventPricingEngine(config).calculate(body)
    return build_export_rows(result, config, settings.currency_symbol)
