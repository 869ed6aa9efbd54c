"""
Client-facing quote summary - display strings built from a QuoteResult.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from pydantic import BaseModel

from app.models.quote import AddonResult, QuoteResult
from app.services.pricing_engine import ADDON_SOURCE_LABELS, ADDON_TYPE_LABELS

MENU_DESCRIPTIONS = {
    "winery": "Winery menu",
    "own_catering": "Catering by the winery",
    "client_catering": "Client brings catering",
}


class QuoteSummary(BaseModel):
    client_name: str = ""
    event_date: str = ""
    event_type: str = ""
    venue: str = ""
    guests: str
    menu: str
    wine: str
    drinks: str
    addons: List[str] = []
    discount_note: str = ""
    total_ex_vat: str
    vat_label: str
    vat_amount: str
    total_inc_vat: str
    per_person: str
    internal: List[str] = []


def quantize(value: float, places: int = 2) -> Decimal:
    """Round half-up to `places` decimals for display."""
    exponent = Decimal(1).scaleb(-places)
    return Decimal(str(value or 0)).quantize(exponent, rounding=ROUND_HALF_UP)


def format_number(value: float, digits: int = 0) -> str:
    return f"{quantize(value, digits):,}"


def format_money(value: float, symbol: str = "₪", digits: Optional[int] = 0) -> str:
    """`digits=None` shows two decimals only when the amount is fractional."""
    if digits is None:
        digits = 0 if quantize(value, 2) == quantize(value, 0) else 2
    return f"{symbol}{format_number(value, digits)}"


def format_percent(ratio: float) -> str:
    pct = quantize(ratio * 100, 1)
    return f"{pct.normalize():f}%" if pct == pct.to_integral() else f"{pct}%"


def describe_guests(result: QuoteResult) -> str:
    guests = result.guests
    text = f"{guests.total_guests} guests ({guests.adults} adults, {guests.children} children)"
    if guests.raised_to_minimum:
        text += f", minimum of {guests.minimum_guests} applied"
    return text


def describe_menu(result: QuoteResult) -> str:
    text = MENU_DESCRIPTIONS.get(result.menu_mode, result.menu_mode)
    menu = result.component("menu")
    included = [e["label"] for e in (menu.details.get("extras", []) if menu else []) if e["include_in_base"]]
    if included:
        text += f" with {', '.join(included)}"
    return text


def describe_wine(result: QuoteResult) -> str:
    actual = result.wine.actual
    if not actual.get("total"):
        return "No wine"
    colors = ", ".join(f"{color} {actual[color]}" for color in ("white", "rose", "red") if actual.get(color))
    return f"{actual['total']} bottles ({colors})"


def describe_drinks(result: QuoteResult) -> str:
    request = result.request
    if request.hot_drinks and request.cold_drinks:
        return "Hot and cold drinks included"
    if request.hot_drinks:
        return "Hot drinks included"
    if request.cold_drinks:
        return "Cold drinks included"
    return "No drinks"


def describe_addon(line: AddonResult, symbol: str = "₪") -> str:
    parts = [line.description or "Add-on", ADDON_TYPE_LABELS.get(line.type, line.type)]
    parts.append(ADDON_SOURCE_LABELS.get(line.source, line.source))
    if line.quantity > 0:
        digits = 0 if float(line.quantity).is_integer() else 2
        parts.append(f"qty {format_number(line.quantity, digits)}")
    if line.price <= 0:
        parts.append("no charge")
    else:
        parts.append(f"{format_money(line.price, symbol, None)} before VAT")
    return " · ".join(parts)


def describe_discount(result: QuoteResult, symbol: str = "₪") -> str:
    totals = result.totals
    parts = []
    if totals.discount_percent > 0:
        digits = 0 if float(totals.discount_percent).is_integer() else 1
        parts.append(f"{format_number(totals.discount_percent, digits)}%")
    if totals.discount_amount > 0:
        parts.append(format_money(totals.discount_amount, symbol))
    if not parts:
        return ""
    text = f"Price includes a discount ({' + '.join(parts)})"
    reason = result.request.discount_reason.strip()
    if reason:
        text += f" — {reason}"
    return text


def addon_lines(result: QuoteResult, symbol: str = "₪") -> List[str]:
    """Add-on lines plus menu extras charged outside the base menu."""
    lines = [describe_addon(line, symbol) for line in result.addons]
    menu = result.component("menu")
    for extra in (menu.details.get("extras", []) if menu else []):
        if extra["include_in_base"]:
            continue
        quantity = extra["quantity"]
        digits = 0 if float(quantity).is_integer() else 1
        lines.append(
            f"{extra['label']} · qty {format_number(quantity, digits)}"
            f" · {format_money(extra['total_income'], symbol, None)} before VAT"
        )
    return lines


def internal_lines(result: QuoteResult, symbol: str = "₪") -> List[str]:
    totals = result.totals
    lines = [
        f"Income before VAT: {format_money(totals.final_income, symbol)}",
        f"Expense: {format_money(totals.subtotal_cost, symbol)}",
        f"Required base price: {format_money(result.base_price.bp, symbol)}",
        f"Target margin: {format_percent(result.base_price.target_pct)}",
        f"Event margin: {format_percent(totals.margin)}",
    ]
    if result.base_price.note:
        lines.append(result.base_price.note)
    return lines


def build_summary(result: QuoteResult, currency_symbol: str = "₪") -> QuoteSummary:
    """Map a QuoteResult to the strings shown to the client and the sales team."""
    totals = result.totals
    venue = result.component("venue")
    request = result.request
    return QuoteSummary(
        client_name=request.client_name,
        event_date=request.event_date,
        event_type=request.event_type,
        venue=(venue.details.get("venue_label", "") if venue else ""),
        guests=describe_guests(result),
        menu=describe_menu(result),
        wine=describe_wine(result),
        drinks=describe_drinks(result),
        addons=addon_lines(result, currency_symbol),
        discount_note=describe_discount(result, currency_symbol),
        total_ex_vat=format_money(totals.final_income, currency_symbol),
        vat_label=f"VAT ({format_percent(totals.vat_rate)})",
        vat_amount=format_money(totals.vat_amount, currency_symbol),
        total_inc_vat=format_money(totals.total_with_vat, currency_symbol),
        per_person=format_money(totals.per_person, currency_symbol, None),
        internal=internal_lines(result, currency_symbol),
    )
