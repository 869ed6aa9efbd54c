"""
Export rows - the table shape the PDF / spreadsheet renderers consume.

Amounts are rounded to 2 decimals (half-up). No document is rendered here.
"""

from typing import List, Mapping

from pydantic import BaseModel

from app.models.pricing_config import COLORS, SUPPLIERS, PricingConfig
from app.models.quote import QuoteResult
from app.services.quote_summary import MENU_DESCRIPTIONS, addon_lines, format_number, format_percent, quantize


class ExportPair(BaseModel):
    label: str
    value: str


class ExportRow(BaseModel):
    key: str
    label: str
    income: float
    expense: float
    profit: float
    margin_pct: float


class ExportSummaryRow(BaseModel):
    label: str
    amount: float


class ExportTable(BaseModel):
    title: str
    metadata: List[ExportPair]
    rows: List[ExportRow]
    totals: ExportRow
    summary: List[ExportSummaryRow]
    addon_lines: List[str] = []
    footer_lines: List[str] = []


def money(value: float) -> float:
    return float(quantize(value, 2))


def _row(key: str, label: str, income: float, expense: float) -> ExportRow:
    profit = income - expense
    return ExportRow(
        key=key,
        label=label,
        income=money(income),
        expense=money(expense),
        profit=money(profit),
        margin_pct=round(profit / income, 4) if income else 0.0,
    )


def describe_allocation(allocation: Mapping[str, Mapping[str, int]], config: PricingConfig) -> str:
    """'ULU wines: white 3, rose 3, red 2 (total 8) | Kosher wines: ...'"""
    groups = []
    for label in SUPPLIERS:
        info = allocation.get(label) or {}
        parts = [f"{color} {info[color]}" for color in COLORS if info.get(color)]
        if not parts:
            continue
        title = config.wine.tier(label).label or label
        groups.append(f"{title}: {', '.join(parts)} (total {info.get('total', 0)})")
    return " | ".join(groups)


def build_export_rows(result: QuoteResult, config: PricingConfig, currency_symbol: str = "₪") -> ExportTable:
    """Flatten a QuoteResult into metadata, breakdown, totals and summary rows."""
    totals = result.totals
    guests = result.guests
    request = result.request

    effective = guests.effective_guests
    effective_text = format_number(effective, 0 if float(effective).is_integer() else 1)
    venue = result.component("venue")
    wine_total = result.wine.actual.get("total", 0)
    wine_text = f"{wine_total} bottles" if wine_total else "No wine"
    allocation_text = describe_allocation(result.wine.allocation, config)
    if allocation_text:
        wine_text += f" ({allocation_text})"

    metadata = [
        ExportPair(label="Client", value=request.client_name or "-"),
        ExportPair(label="Date", value=request.event_date or "-"),
        ExportPair(label="Event type", value=request.event_type or "-"),
        ExportPair(label="Guests", value=str(guests.total_guests)),
        ExportPair(label="Billing guests", value=effective_text),
        ExportPair(label="Menu", value=MENU_DESCRIPTIONS.get(result.menu_mode, result.menu_mode)),
        ExportPair(label="Venue", value=(venue.details.get("venue_label") if venue else None) or "-"),
        ExportPair(label="Wine", value=wine_text),
    ]

    rows = [_row(row.key, row.label, row.income, row.expense) for row in result.breakdown]
    if totals.discount_total > 0:
        rows.append(_row("discount", "Discount", -totals.discount_total, 0.0))

    income_sum = sum(row.income for row in result.breakdown) - totals.discount_total
    expense_sum = sum(row.expense for row in result.breakdown)
    profit = totals.final_income - expense_sum
    totals_row = ExportRow(
        key="totals",
        label="Total",
        income=money(income_sum),
        expense=money(expense_sum),
        profit=money(profit),
        margin_pct=round(profit / totals.final_income, 4) if totals.final_income else 0.0,
    )

    summary = [
        ExportSummaryRow(label="Total before VAT", amount=money(totals.final_income)),
        ExportSummaryRow(label=f"VAT ({format_percent(totals.vat_rate)})", amount=money(totals.vat_amount)),
        ExportSummaryRow(label="Total including VAT", amount=money(totals.total_with_vat)),
        ExportSummaryRow(label="Price per person", amount=money(totals.per_person)),
        ExportSummaryRow(label="Profit", amount=money(totals.profit)),
    ]

    numbered = [f"{i}. {line}" for i, line in enumerate(addon_lines(result, currency_symbol), start=1)]

    return ExportTable(
        title=config.branding.internal_report_title,
        metadata=metadata,
        rows=rows,
        totals=totals_row,
        summary=summary,
        addon_lines=numbered,
        footer_lines=list(config.branding.footer_lines),
    )
