"""
Tests: Event pricing engine (components, base price, add-ons, totals).

Run with:
    pytest tests/test_pricing_engine.py -v
"""

import pytest

from app.models.pricing_config import PricingConfig
from app.models.quote import AddonLine, GuestSummary, PricingComponent
from app.services.base_price_solver import compute_base_price
from app.services.pricing_engine import EventPricingEngine, calculate_quote
from tests.conftest import make_request


def standard_request(**overrides):
    fields = {"adults": 40, "children": 10}
    fields.update(overrides)
    return make_request(**fields)


def guest_summary(total: int) -> GuestSummary:
    return GuestSummary(
        adults=total,
        children=0,
        entered_total=total,
        total_guests=total,
        effective_guests=float(total),
        minimum_guests=20,
        child_factor=0.75,
        raised_to_minimum=False,
    )


class TestGuests:
    def test_effective_guests(self, engine):
        guests = engine.resolve_guests(standard_request())
        assert guests.total_guests == 50
        assert guests.effective_guests == pytest.approx(47.5)
        assert guests.raised_to_minimum is False

    def test_minimum_raises_adults(self, engine):
        guests = engine.resolve_guests(make_request(adults=5, children=3))
        assert guests.adults == 17
        assert guests.children == 3
        assert guests.total_guests == 20
        assert guests.entered_total == 8
        assert guests.effective_guests == pytest.approx(19.25)
        assert guests.raised_to_minimum is True

    def test_vat_override(self, engine):
        assert engine.effective_vat(standard_request()) == 0.18
        assert engine.effective_vat(standard_request(vat_rate=0.17)) == 0.17
        assert engine.effective_vat(standard_request(vat_rate=-1)) == 0.18
        assert engine.effective_vat(standard_request(vat_rate=0)) == 0


class TestStandardQuote:
    """40 adults + 10 children, winery menu, short event, house wine, manager."""

    @pytest.fixture
    def result(self, engine):
        return engine.calculate(standard_request())

    def test_food(self, result):
        menu = result.component("menu")
        assert menu.cost == pytest.approx(2185)
        assert menu.income == pytest.approx(181 / 1.18 * 47.5)

    def test_drinks(self, result):
        drinks = result.component("drinks")
        assert drinks.cost == pytest.approx(511.25)
        assert drinks.income == pytest.approx(1686)
        assert drinks.details["extra_cost"] == 0

    def test_wine(self, result):
        wine = result.component("wine")
        assert result.wine.required == {"white": 3, "rose": 3, "red": 2, "total": 8}
        assert result.wine.auto is True
        assert wine.cost == pytest.approx(350)
        assert wine.income == pytest.approx(1248 / 1.18)

    def test_staff(self, result):
        staff = result.component("staff")
        assert staff.details["workers"] == 2
        assert staff.cost == pytest.approx(1600)
        assert staff.income == pytest.approx(1700)
        assert staff.label == "Staff (2 workers + manager)"

    def test_base_price_has_surplus(self, result):
        assert result.target_mode == "our_food"
        assert result.base_price.target_pct == pytest.approx(0.59)
        assert result.base_price.bp == 0
        assert result.base_price.surplus > 0

    def test_breakdown_order_skips_empty_rows(self, result):
        assert [row.key for row in result.breakdown] == ["base", "menu", "drinks", "wine", "staff"]

    def test_totals(self, result):
        totals = result.totals
        expected = sum(c.income for c in result.components)
        assert totals.subtotal_income == pytest.approx(expected)
        assert totals.final_income == pytest.approx(expected)
        assert totals.vat_amount == pytest.approx(expected * 0.18)
        assert totals.per_person == pytest.approx(expected * 1.18 / 50)

    def test_calculate_quote_wrapper(self, config, result):
        again = calculate_quote(config, standard_request())
        assert again.totals == result.totals


class TestBasePrice:
    def test_low_menu_price_needs_top_up(self):
        config = PricingConfig.model_validate({"food": {"winery": {"price_inc_vat": 50}}})
        result = EventPricingEngine(config).calculate(standard_request())
        assert result.base_price.bp > 0
        assert result.base_price.revenue_pct == pytest.approx(0.59)
        assert result.breakdown[0].key == "base"
        assert result.breakdown[0].income == pytest.approx(result.base_price.bp)
        assert result.totals.subtotal_income == pytest.approx(
            sum(c.income for c in result.components) + result.base_price.bp
        )

    def test_extras_outside_base_do_not_change_base_price(self, engine):
        plain = engine.calculate(standard_request())
        with_extra = engine.calculate(standard_request(food_extras=["quiches"]))
        assert with_extra.base_price.bp == plain.base_price.bp
        assert with_extra.base_price.denom == pytest.approx(plain.base_price.denom)


class TestFood:
    def test_extra_outside_base(self, engine):
        menu = engine.calculate(standard_request(food_extras=["menu_extra_quiches"])).component("menu")
        assert menu.details["base_cost"] == pytest.approx(2185)
        assert menu.details["extra_cost"] == pytest.approx(8 * 47.5)
        assert menu.details["extra_income"] == pytest.approx(33 / 1.18 * 47.5)
        assert menu.cost == pytest.approx(2185 + 380)

    def test_extra_inside_base(self):
        config = PricingConfig.model_validate({
            "food": {"extras": {"cheese": {"label": "Cheese board", "price_inc_vat": 59, "cost_ex_vat": 12,
                                           "per_guest_mode": "per_event"}}}
        })
        menu = EventPricingEngine(config).calculate(standard_request(food_extras=["cheese"])).component("menu")
        assert menu.details["base_cost"] == pytest.approx(2185 + 12)
        assert menu.details["extra_cost"] == 0

    def test_winery_only_extra_ignored_for_catering(self, engine):
        menu = engine.calculate(
            standard_request(menu_mode="own_catering", catering_rate_ex_vat=100, food_extras=["quiches"])
        ).component("menu")
        assert menu.details["extras"] == []
        assert menu.cost == pytest.approx(5000)
        assert menu.income == pytest.approx(5750)

    def test_client_catering_fee(self, engine):
        result = engine.calculate(standard_request(menu_mode="client_catering"))
        menu = result.component("menu")
        assert menu.cost == 0
        assert menu.income == pytest.approx(2000)
        assert result.target_mode == "customer_catering"


class TestDrinks:
    def test_higher_rate_splits_extra(self, engine):
        drinks = engine.calculate(standard_request(hot_rate=2)).component("drinks")
        assert drinks.details["consumption"]["extra"]["hot"] == pytest.approx(47.5)
        assert drinks.cost == pytest.approx(772.5)
        assert drinks.details["base_cost"] == pytest.approx(511.25)

    def test_disabled_drinks(self, engine):
        drinks = engine.calculate(standard_request(hot_drinks=False, cold_drinks=False)).component("drinks")
        assert drinks.cost == 0
        assert drinks.income == 0

    def test_duration_rates(self, engine):
        drinks = engine.calculate(standard_request(duration="long")).component("drinks")
        assert drinks.cost == pytest.approx(2 * 511.25)


class TestWine:
    def test_manual_bottles(self, engine):
        result = engine.calculate(standard_request(bottles={"white": 5, "rose": 3, "red": 0}))
        assert result.wine.auto is False
        assert result.wine.shortfall == {"white": 0, "rose": 0, "red": 2, "total": 2}
        assert result.wine.extra == {"white": 2, "rose": 0, "red": 0, "total": 2}
        assert result.component("wine").cost == pytest.approx(430)

    def test_kosher_tier(self, engine):
        result = engine.calculate(standard_request(wine_tier="kosher"))
        assert result.wine.allocation["kosher"]["total"] == 8
        assert result.component("wine").cost == pytest.approx(280)

    def test_mix_tier(self, engine):
        result = engine.calculate(standard_request(wine_tier="mix"))
        assert result.wine.allocation["ulu"]["total"] == 6
        assert result.wine.allocation["kosher"]["total"] == 2


class TestStaffing:
    @pytest.mark.parametrize("guests,workers", [(45, 2), (10, 1), (20, 1), (79, 3), (150, 4)])
    def test_worker_brackets(self, engine, guests, workers):
        assert engine.worker_count(guests, "our_food") == workers

    def test_catering_column(self, engine):
        assert engine.worker_count(65, "catering") == 2

    def test_without_manager(self, engine):
        staff = engine.calculate(standard_request(include_manager=False)).component("staff")
        assert staff.cost == pytest.approx(1100)
        assert staff.label == "Staff (2 workers)"

    def test_fractional_workers_billed_as_configured(self):
        config = PricingConfig.model_validate({
            "staffing": {"worker_matrix": [{"min_guests": 1, "max_guests": 100, "our_food": 1.5}]}
        })
        engine = EventPricingEngine(config)
        assert engine.worker_count(50, "our_food") == 1.5
        staff = engine.calculate(standard_request(include_manager=False)).component("staff")
        assert staff.cost == pytest.approx(1.5 * 550)
        assert staff.label == "Staff (1.5 workers)"

    def test_zero_manager_bonus_not_labelled(self):
        config = PricingConfig.model_validate({"staffing": {"manager_bonus_ex_vat": 0}})
        staff = EventPricingEngine(config).calculate(standard_request()).component("staff")
        assert staff.cost == pytest.approx(1100)
        assert staff.label == "Staff (2 workers)"


class TestVenue:
    @pytest.fixture
    def venue_engine(self):
        config = PricingConfig.model_validate({
            "venues": [{
                "key": "hall",
                "label": "Hall",
                "base_fee_ex_vat": 1000,
                "cost_ex_vat": 200,
                "location_multiplier": 1.1,
                "brackets": [
                    {"max_guests": 30, "multiplier": 1},
                    {"max_guests": 60, "multiplier": 1.2, "base_fee": 1200},
                ],
            }],
            "time_multipliers": {"night": 1.5},
        })
        return EventPricingEngine(config)

    def test_bracket_location_and_time(self, venue_engine):
        result = venue_engine.calculate(standard_request(venue_key="hall", night=True))
        venue = result.component("venue")
        assert venue.income == pytest.approx(2376)
        assert venue.cost == pytest.approx(396)
        assert venue.label == "Hall (x1.98)"
        assert result.breakdown[1].key == "venue"

    def test_small_bracket(self, venue_engine):
        venue = venue_engine.calculate(make_request(adults=25, venue_key="hall")).component("venue")
        assert venue.income == pytest.approx(1100)

    def test_brackets_matched_by_size_not_config_order(self):
        config = PricingConfig.model_validate({
            "venues": [{
                "key": "hall",
                "base_fee_ex_vat": 1000,
                "brackets": [
                    {"multiplier": 3},
                    {"max_guests": 60, "multiplier": 1.5},
                    {"max_guests": 30, "multiplier": 1},
                ],
            }],
        })
        engine = EventPricingEngine(config)
        assert engine.calculate(make_request(adults=25, venue_key="hall")).component("venue").income == (
            pytest.approx(1000)
        )
        assert engine.calculate(standard_request(venue_key="hall")).component("venue").income == (
            pytest.approx(1500)
        )
        assert engine.calculate(make_request(adults=90, venue_key="hall")).component("venue").income == (
            pytest.approx(3000)
        )

    def test_unknown_venue_is_free(self, engine):
        venue = engine.calculate(standard_request(venue_key="moon")).component("venue")
        assert venue.income == 0
        assert venue.cost == 0


class TestAddons:
    def price(self, engine, **fields):
        return engine.price_addon(AddonLine.model_validate(fields), 50)

    def test_winery_commission_fixed(self, engine):
        line = self.price(engine, source="winery", type="commission_winery_fixed", price=2000)
        assert line.cost == 2000
        assert line.commission == pytest.approx(300)
        assert line.price == pytest.approx(2300)

    def test_winery_commission_per_person(self, engine):
        line = self.price(engine, source="winery", type="commission_winery_per_person", price=10)
        assert line.quantity == 50
        assert line.price == pytest.approx(575)

    def test_customer_commission_clamped(self, engine):
        low = self.price(engine, source="customer", type="commission_per_person", price=5)
        high = self.price(engine, source="customer", type="commission_per_person", price=100)
        assert low.price == pytest.approx(500)
        assert high.price == pytest.approx(3000)
        assert low.cost == 0

    def test_fixed_and_per_person(self, engine):
        assert self.price(engine, type="fixed", price=250).price == 250
        assert self.price(engine, source="customer", type="per_person", price=20).price == pytest.approx(1000)
        assert self.price(engine, type="fixed", price=-40).price == 0

    def test_addons_not_in_base_price(self, engine):
        plain = engine.calculate(standard_request())
        result = engine.calculate(standard_request(addons=[{"description": "DJ", "price": 2000,
                                                            "type": "commission_winery_fixed"}]))
        assert result.base_price.denom == pytest.approx(plain.base_price.denom)
        assert result.component("addons").income == pytest.approx(2300)
        assert result.breakdown[-1].key == "addons"


class TestTotals:
    def totals(self, **request_fields):
        components = [PricingComponent(key="menu", label="Menu", cost=400, income=1000)]
        base_price = compute_base_price(50, "our_food", 0, 0, 0, 0, 0, 0)
        request = make_request(adults=50, **request_fields)
        return EventPricingEngine._totals(request, components, base_price, guest_summary(50), 0.18)

    def test_vat_and_per_person(self):
        totals = self.totals()
        assert totals.vat_amount == pytest.approx(180)
        assert totals.total_with_vat == pytest.approx(1180)
        assert totals.per_person == pytest.approx(23.6)
        assert totals.profit == pytest.approx(600)
        assert totals.margin == pytest.approx(0.6)

    def test_discount_percent_and_amount(self):
        totals = self.totals(discount_percent=10, discount_amount=50)
        assert totals.discount_from_percent == pytest.approx(100)
        assert totals.discount_total == pytest.approx(150)
        assert totals.final_income == pytest.approx(850)

    def test_discount_percent_capped_at_100(self):
        totals = self.totals(discount_percent=150)
        assert totals.discount_percent == 100
        assert totals.final_income == 0

    def test_discount_capped_at_subtotal(self):
        totals = self.totals(discount_amount=5000)
        assert totals.discount_total == pytest.approx(1000)
        assert totals.final_income == 0
        assert totals.margin == 0
