"""
Demo script - Prices a sample event and prints the summary.

Run with: python -m scripts.quote_demo [request.json]
"""

import json
import sys

from app.config import get_settings
from app.models.quote import QuoteRequest
from app.services.config_store import get_pricing_config
from app.services.pricing_engine import EventPricingEngine
from app.services.quote_export import build_export_rows
from app.services.quote_summary import build_summary

SAMPLE_REQUEST = {
    "client_name": "Demo client",
    "event_type": "Birthday",
    "adults": 40,
    "children": 10,
    "menu_mode": "winery",
    "food_extras": ["quiches"],
    "duration": "medium",
    "wine_tier": "mix",
    "venue_key": "outside",
    "addons": [
        {"description": "DJ", "source": "winery", "type": "commission_winery_fixed", "price": 2000},
        {"description": "Photographer", "source": "customer", "type": "commission_per_person", "price": 15},
    ],
    "discount_percent": 5,
    "discount_reason": "Returning client",
}


def load_request() -> QuoteRequest:
    if len(sys.argv) > 1:
        with open(sys.argv[1], encoding="utf-8") as fh:
            return QuoteRequest.model_validate(json.load(fh))
    return QuoteRequest.model_validate(SAMPLE_REQUEST)


def main():
    """Price the request and print the client summary and export rows."""
    settings = get_settings()
    config = get_pricing_config()
    result = EventPricingEngine(config).calculate(load_request())
    summary = build_summary(result, settings.currency_symbol)
    export = build_export_rows(result, config, settings.currency_symbol)

    print(f"🍷 {export.title}")
    print(f"   {summary.guests}")
    print(f"   Menu: {summary.menu}")
    print(f"   Wine: {summary.wine}")
    print(f"   {summary.drinks}")
    for line in summary.addons:
        print(f"   + {line}")
    if summary.discount_note:
        print(f"   {summary.discount_note}")

    print("\n📊 Breakdown (ex-VAT):")
    for row in export.rows:
        print(f"   {row.label:<40} income {row.income:>10,.2f}  expense {row.expense:>10,.2f}")
    print(f"   {export.totals.label:<40} income {export.totals.income:>10,.2f}  expense {export.totals.expense:>10,.2f}")

    print(f"\n💰 Total before VAT: {summary.total_ex_vat}")
    print(f"   {summary.vat_label}: {summary.vat_amount}")
    print(f"   Total incl. VAT: {summary.total_inc_vat} ({summary.per_person} per person)")
    print("\n🔒 Internal:")
    for line in summary.internal:
        print(f"   {line}")


if __name__ == "__main__":
    main()
