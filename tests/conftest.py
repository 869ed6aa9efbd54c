"""
Shared fixtures: config snapshots and a ready engine.
"""

import pytest

from app.models.pricing_config import PricingConfig
from app.models.quote import QuoteRequest
from app.services.config_store import load_pricing_config
from app.services.pricing_engine import EventPricingEngine


@pytest.fixture
def config() -> PricingConfig:
    """Built-in defaults."""
    return PricingConfig()


@pytest.fixture
def bundled_config() -> PricingConfig:
    """The JSON file shipped in app/data."""
    return load_pricing_config()


@pytest.fixture
def engine(config) -> EventPricingEngine:
    return EventPricingEngine(config)


def make_request(**fields) -> QuoteRequest:
    return QuoteRequest.model_validate(fields)
