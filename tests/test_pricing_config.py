"""
Tests: Pricing config normalization, config store and request parsing.

Run with:
    pytest tests/test_pricing_config.py -v
"""

import json

import pytest
from pydantic import ValidationError

from app.models.pricing_config import PricingConfig
from app.models.quote import AddonLine, QuoteRequest
from app.services.config_store import PricingConfigError, load_pricing_config
from app.services.margin_targets import get_target_pct


class TestLegacyNames:
    def test_staffing_aliases(self):
        config = PricingConfig.model_validate({
            "staffing": {
                "workerRate_exVAT": 600,
                "managerBonus_exVAT": 450,
                "fixedRevenue_exVAT": 0,
                "workerMatrix": [{"minGuests": 1, "maxGuests": 200, "workers": 3}],
            }
        })
        staffing = config.staffing
        assert staffing.worker_rate_ex_vat == 600
        assert staffing.manager_bonus_ex_vat == 450
        assert staffing.revenue_component_ex_vat == 0
        assert staffing.worker_matrix[0].our_food == 3
        assert staffing.worker_matrix[0].catering == 3

    def test_drink_cost_alias_and_multiplier(self):
        config = PricingConfig.model_validate({"drinks": {"hot": {"cost_exVAT": 4}}})
        assert config.drinks.hot.cost_per_unit == 4
        assert config.drinks.hot.unit_price == 12

    def test_wine_and_food_aliases(self):
        config = PricingConfig.model_validate({
            "food": {"winery": {"price_incVAT": 200, "costPerGuest": 50}},
            "wine": {"baseline": {"bottlePerAdults": 4, "mixSplit": {"ulu": 0.5, "kosher": 0.5}}},
        })
        assert config.food.winery.price_inc_vat == 200
        assert config.food.winery.cost_ex_vat == 50
        assert config.wine.baseline.guests_per_bottle == 4
        assert config.wine.baseline.mix_split.ulu == 0.5

    def test_child_food_factor_wins(self):
        config = PricingConfig.model_validate({"children": {"factor": 0.5}, "food": {"child_food_factor": 0.6}})
        assert config.child_factor == 0.6
        assert PricingConfig.model_validate({"children": {"factor": 0.5}}).child_factor == 0.5

    def test_legacy_venue_locations(self):
        config = PricingConfig.model_validate({
            "venues": [{"key": "inside", "label": "Hall", "base_fee_ex_vat": 800}],
            "pricing": {
                "venues": {"baseFees": {"inside": {"baseFee": 1}, "garden": {"baseFee": 600}}},
                "place": {"venues": {"terrace": {"label": "Terrace", "cost_exVAT": 90}}},
                "timeMultipliers": {"night": 1.2, "shabbat": 1.5},
            },
        })
        assert [v.key for v in config.venues] == ["inside", "garden", "terrace"]
        assert config.venue("inside").base_fee_ex_vat == 800
        assert config.venue("garden").base_fee_ex_vat == 600
        assert config.venue("terrace").cost_ex_vat == 90
        assert config.time_multipliers.night == 1.2
        assert config.time_multipliers.holiday == 1.0
        assert config.venue("cellar") is None

    def test_venue_mapping(self):
        config = PricingConfig.model_validate({"venues": {"barrel_room": {"label": "Barrel room"}}})
        assert config.venue("barrel_room").label == "Barrel room"


class TestTolerantValues:
    def test_unparseable_vat_uses_default(self):
        assert PricingConfig.model_validate({"vat": "abc"}).vat == 0.18
        assert PricingConfig.model_validate({"vat": "0,17"}).vat == 0.17

    def test_bad_nested_value_keeps_siblings(self):
        config = PricingConfig.model_validate({"food": {"winery": {"price_inc_vat": "n/a", "cost_ex_vat": 30}}})
        assert config.food.winery.price_inc_vat == 181
        assert config.food.winery.cost_ex_vat == 30

    def test_minimum_guests_rounded(self):
        assert PricingConfig.model_validate({"events": {"minimumGuests": "24.5"}}).minimum_guests == 25
        assert PricingConfig.model_validate({"events": {"minimum_guests": -3}}).minimum_guests == 0

    def test_snapshot_is_frozen(self, config):
        with pytest.raises(ValidationError):
            config.vat = 0.2

    def test_unknown_keys_ignored(self):
        config = PricingConfig.model_validate({"tenant": "x", "vat": 0.17})
        assert config.vat == 0.17


class TestMalformedEntries:
    def test_bad_knot_keeps_other_modes_and_siblings(self):
        config = PricingConfig.model_validate({
            "revenue_targets": {
                "our_food": [{"guests": 20, "pct": 0.30}, {"guests": 60, "pct": 0.30}],
                "catering": [{"guests": 20, "pct": 0.10}, {"guests": "x", "pct": 0.9}],
            }
        })
        targets = config.revenue_targets
        assert get_target_pct(40, "our_food", targets) == pytest.approx(0.30)
        assert len(targets["catering"]) == 1
        assert get_target_pct(40, "catering", targets) == pytest.approx(0.10)

    def test_mode_without_valid_knots_uses_its_default(self):
        config = PricingConfig.model_validate({
            "revenue_targets": {
                "our_food": [{"guests": 20, "pct": 0.30}],
                "customer_catering": [{"guests": None}, "oops"],
            }
        })
        targets = config.revenue_targets
        assert get_target_pct(45, "our_food", targets) == pytest.approx(0.30)
        assert get_target_pct(90, "customer_catering", targets) == pytest.approx(0.325)

    def test_bad_extra_keeps_valid_extras(self):
        config = PricingConfig.model_validate({
            "food": {"extras": {"cheese": {"label": "Cheese board", "price_inc_vat": 59}, "broken": "oops"}}
        })
        assert list(config.food.extras) == ["cheese"]
        assert config.food.extras["cheese"].price_inc_vat == 59

    def test_bad_entries_in_other_tables(self):
        config = PricingConfig.model_validate({
            "staffing": {"worker_matrix": [{"min_guests": 1, "max_guests": 500, "our_food": 5}, "oops"]},
            "wine": {"tiers": {"ulu": {"label": "House"}, "kosher": 7}},
            "venues": [
                {"key": "hall", "brackets": [{"max_guests": 50, "multiplier": 2}, None]},
                {"key": 5},
            ],
        })
        assert len(config.staffing.worker_matrix) == 1
        assert config.staffing.worker_matrix[0].our_food == 5
        assert list(config.wine.tiers) == ["ulu"]
        assert [venue.key for venue in config.venues] == ["hall"]
        assert len(config.venue("hall").brackets) == 1


class TestConfigStore:
    def test_bundled_file_matches_defaults(self, bundled_config, config):
        assert bundled_config.vat == config.vat
        assert bundled_config.wine.baseline.minimum_guests_for_all_types == 20
        assert bundled_config.staffing.worker_matrix == config.staffing.worker_matrix
        assert bundled_config.branding.footer_lines

    def test_explicit_file(self, tmp_path):
        path = tmp_path / "pricing.json"
        path.write_text(json.dumps({"vat": 0.17, "events": {"minimum_guests": 10}}), encoding="utf-8")
        config = load_pricing_config(path)
        assert config.vat == 0.17
        assert config.minimum_guests == 10

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(PricingConfigError) as exc:
            load_pricing_config(tmp_path / "missing.json")
        assert "missing.json" in exc.value.message

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PricingConfigError):
            load_pricing_config(path)

    def test_non_object_raises(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(PricingConfigError) as exc:
            load_pricing_config(path)
        assert exc.value.reason == "expected a JSON object"


class TestQuoteRequestParsing:
    def test_enum_aliases(self):
        request = QuoteRequest.model_validate({
            "menuMode": "catering",
            "wineTier": "house",
            "duration": "LONG",
        })
        assert request.menu_mode == "own_catering"
        assert request.wine_tier == "ulu"
        assert request.duration == "long"

    def test_unknown_values_fall_back(self):
        request = QuoteRequest.model_validate({"menu_mode": "buffet", "wine_tier": "cava", "duration": "all_day"})
        assert request.menu_mode == "winery"
        assert request.wine_tier == "ulu"
        assert request.duration == "short"

    def test_counts_are_tolerant(self):
        request = QuoteRequest.model_validate({"adults": "30", "children": -4, "bottles": {"white": "2.6"}})
        assert request.adults == 30
        assert request.children == 0
        assert request.bottles.white == 3
        assert request.bottles.total == 3

    def test_food_extras_from_string(self):
        request = QuoteRequest.model_validate({"food_extras": "quiches, pizza,,"})
        assert request.food_extras == ["quiches", "pizza"]

    def test_addon_type_follows_source(self):
        assert AddonLine.model_validate({"source": "customer", "type": "commission_winery_fixed"}).type == (
            "commission_per_person"
        )
        assert AddonLine.model_validate({"source": "winery", "type": "commission_per_person"}).type == (
            "commission_winery_fixed"
        )
        line = AddonLine.model_validate({"source": "partner", "pricing_type": "commission_fixed", "amount": "1500"})
        assert line.source == "winery"
        assert line.type == "commission_winery_fixed"
        assert line.price == 1500
        assert AddonLine.model_validate({"type": "bogus"}).type == "fixed"
