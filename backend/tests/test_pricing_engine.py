"""
Tests for the pricing engine.

Temple, TX is used for custom and config pricing: it sits in the CTX
division, has no franchise fee and no municipal rate sheet, so only the
8.25% sales tax applies from the city side.
"""

import pytest

from haulquote.models import (
    AdditionalFee,
    BrokerRate,
    ContainerSpecificOverride,
    ContainerSpecificPricingRule,
    CustomPricingRule,
    FranchisedCitySupplementaryPricing,
    GlobalPricingRule,
    PricingConfig,
    PricingLogic,
    RollOffPricing,
    ServiceAreaVerificationData,
    ServiceRequest,
    SupplementaryCost,
)
from haulquote.utils.pricing_engine import (
    ROLL_OFF_CONFIG_MISSING,
    PricingEngine,
    convert_fee_to_monthly_equivalent,
    extract_container_size_number,
    normalize_container_size_for_rules,
    resolve_auto_inherit,
)
from haulquote.utils.regional_rates import default_pricing_logic


def make_request(**kwargs):
    defaults = {"id": "request-1", "company_name": "Acme", "city": "Temple", "state": "TX",
                "container_size": "4YD", "frequency": "1x/week"}
    defaults.update(kwargs)
    return ServiceRequest(**defaults)


def config_engine(**config):
    return PricingEngine(PricingLogic(type="custom", pricing_config=PricingConfig(**config)))


def global_rule(**kwargs):
    defaults = {"id": "rule-1", "small_container_price_per_yard": 10, "large_container_price_per_yard": 8,
                "fuel_surcharge_percent": 0, "tax_percent": 0}
    defaults.update(kwargs)
    return GlobalPricingRule(**defaults)


class TestHelpers:
    def test_extract_container_size_number(self):
        assert extract_container_size_number("6 Yard") == 6
        assert extract_container_size_number("Cart") == 8
        assert extract_container_size_number(None) == 8

    def test_normalize_container_size_for_rules(self):
        assert normalize_container_size_for_rules("8 yard") == "8YD"
        assert normalize_container_size_for_rules("") == "8YD"

    @pytest.mark.parametrize("price,frequency,expected", [
        (10, "monthly", 10),
        (5, "weekly", 21.65),
        (30, "quarterly", 10),
        (120, "annually", 10),
        (99, "one-time", 0),
        (7, "fortnightly", 7),
    ])
    def test_monthly_equivalent(self, price, frequency, expected):
        assert convert_fee_to_monthly_equivalent(price, frequency) == pytest.approx(expected)

    def test_auto_inherit_defaults(self):
        request = resolve_auto_inherit(make_request(
            equipment_type="auto-inherit", container_size="auto-inherit", material_type="auto-inherit"
        ))
        assert request.equipment_type == "Front-Load Container"
        assert request.container_size == "8YD"
        assert request.material_type == "Solid Waste"


class TestFranchisedCityQuote:
    """Municipal contract rates win over any configured logic."""

    def test_waco_contract_rate(self):
        engine = PricingEngine(default_pricing_logic())
        quote = engine.generate_quote(make_request(city="Waco"))

        assert quote.status == "success"
        assert quote.pricing_source == "Waco Municipal Contract"
        assert quote.matched_rate["id"] == "waco-4yd-1xweek"
        assert quote.total_monthly_volume == pytest.approx(17.32)
        assert quote.base_rate == pytest.approx(92)
        assert quote.fuel_surcharge_amount == pytest.approx(13.8)
        assert quote.franchise_fee_amount == pytest.approx(3.68)
        assert quote.subtotal == pytest.approx(109.48)
        assert quote.local_tax_amount == pytest.approx(9.0321)
        assert quote.total_monthly_cost == pytest.approx(118.5121)
        assert quote.delivery_fee == 100
        assert quote.extra_pickup_rate == 100

    def test_contract_rate_ignores_custom_logic(self):
        engine = config_engine(small_container_price=1, large_container_price=1)
        quote = engine.generate_quote(make_request(city="Waco"))
        assert quote.pricing_source == "Waco Municipal Contract"

    def test_supplementary_costs_are_add_ons(self):
        logic = default_pricing_logic().model_copy(update={
            "franchised_city_supplementary": {
                "waco, tx": FranchisedCitySupplementaryPricing(
                    city_name="Waco", state="TX",
                    supplementary_costs=[SupplementaryCost(category="Lock", amount=20, frequency="monthly")],
                )
            }
        })
        quote = PricingEngine(logic).generate_quote(make_request(city="Waco"))

        assert quote.add_ons_cost == pytest.approx(20)
        assert quote.franchise_fee_amount == pytest.approx(4.48)
        assert quote.subtotal == pytest.approx(130.28)
        assert quote.add_on_details[0].category == "Lock"

    def test_no_contract_line_fails(self):
        quote = PricingEngine(default_pricing_logic()).generate_quote(make_request(city="Waco", container_size="40YD"))
        assert quote.status == "failed"
        assert "No municipal rate found" in quote.failure_reason

    def test_roll_off_contract_line(self):
        quote = PricingEngine(default_pricing_logic()).generate_quote(
            make_request(city="Bellmead", container_size="30YD", frequency="1x/month", equipment_type="Roll-off")
        )
        assert quote.status == "success"
        assert quote.matched_rate["id"] == "bellmead-rolloff-20-30-40yd"
        assert quote.base_rate == pytest.approx(135.12)
        assert quote.franchise_fee_rate == 7

    def test_on_demand_roll_off_fails(self):
        quote = PricingEngine(default_pricing_logic()).generate_quote(
            make_request(city="Bellmead", container_size="30YD", frequency="On-demand", equipment_type="Roll-off")
        )
        assert quote.status == "failed"
        assert quote.failure_reason == (
            "Municipal rate bellmead-rolloff-20-30-40yd in Bellmead has no monthly rate for On-demand service"
        )

    def test_zero_monthly_rate_fails(self):
        quote = PricingEngine(default_pricing_logic()).generate_quote(
            make_request(city="Bellmead", container_size="Compactor", frequency="1x/month", equipment_type="Compactor")
        )
        assert quote.status == "failed"
        assert quote.failure_reason == (
            "Municipal rate bellmead-compactor in Bellmead has no monthly rate for 1x/month service"
        )


class TestRegionalQuote:
    def test_dallas_uses_ntx_sheet(self):
        quote = PricingEngine(default_pricing_logic()).generate_quote(
            make_request(city="Dallas", container_size="2YD")
        )

        assert quote.status == "success"
        assert quote.pricing_source == "NTX Regional Rate Sheet"
        assert quote.base_rate == pytest.approx(69.28)
        assert quote.fuel_surcharge_amount == pytest.approx(10.392)
        assert quote.franchise_fee_rate == 5
        assert quote.franchise_fee_amount == pytest.approx(3.464)
        assert quote.subtotal == pytest.approx(83.136)
        assert quote.total_monthly_cost == pytest.approx(89.99472)
        assert quote.delivery_fee == 100

    def test_city_without_division_fails(self):
        quote = PricingEngine(default_pricing_logic()).generate_quote(make_request(city="Midland"))
        assert quote.status == "failed"
        assert quote.failure_reason == "Cannot determine region for Midland, TX"

    def test_missing_rate_fails(self):
        quote = PricingEngine(default_pricing_logic()).generate_quote(
            make_request(city="Dallas", container_size="40YD")
        )
        assert quote.failure_reason == "No rate found for 40YD with 1x/week frequency in NTX region"

    def test_engine_level_regional_data(self):
        engine = PricingEngine(PricingLogic(type="regional-brain"))
        assert engine.generate_quote(make_request(city="Dallas")).failure_reason == "Regional pricing data not available"

        engine.set_regional_pricing_data(default_pricing_logic().regional_pricing_data)
        assert engine.generate_quote(make_request(city="Dallas")).status == "success"


class TestCustomRuleQuote:
    def custom_rule(self, **kwargs):
        defaults = {"id": "custom-1", "city": "Temple", "state": "TX", "equipment_type": "Front-Load Container",
                    "container_size": "4YD", "frequency": "1x/week", "material_type": "Solid Waste",
                    "price_per_yard": 5, "fuel_surcharge": 0, "tax": 0}
        defaults.update(kwargs)
        return CustomPricingRule(**defaults)

    def test_matching_rule(self):
        engine = PricingEngine(PricingLogic(type="custom", custom_rules=[self.custom_rule()]))
        quote = engine.generate_quote(make_request())

        assert quote.pricing_source == "Custom Rule"
        assert quote.total_monthly_cost == pytest.approx(86.6)
        assert quote.matched_rate["id"] == "custom-1"

    def test_auto_inherit_rule_uses_large_price(self):
        rule = self.custom_rule(container_size="auto-inherit", large_container_price_per_yard=4)
        engine = PricingEngine(PricingLogic(type="custom", custom_rules=[rule]))
        quote = engine.generate_quote(make_request(container_size="8YD"))

        assert quote.base_rate == pytest.approx(8 * 4.33 * 4)

    def test_unmatched_rule_without_config_fails(self):
        engine = PricingEngine(PricingLogic(type="custom", custom_rules=[self.custom_rule(city="Belton")]))
        quote = engine.generate_quote(make_request())
        assert quote.failure_reason == "No matching custom rule or pricing configuration found"

    def test_unmatched_rule_falls_back_to_config(self):
        logic = PricingLogic(
            type="custom",
            custom_rules=[self.custom_rule(city="Belton")],
            pricing_config=PricingConfig(small_container_price=3, large_container_price=2),
        )
        quote = PricingEngine(logic).generate_quote(make_request())
        assert quote.pricing_source == "Default Config (Small Container Price)"

    def test_no_rules_or_config_fails(self):
        quote = PricingEngine(PricingLogic(type="custom")).generate_quote(make_request())
        assert quote.failure_reason == "No custom rules or pricing configuration available"


class TestGlobalPricingRules:
    """Global rule -> container override -> small/large price."""

    def test_container_override_for_any_equipment(self):
        rule = global_rule(container_specific_pricing=[ContainerSpecificOverride(container_size="6YD", price_per_yard=12)])
        engine = config_engine(global_pricing_rules=[rule])
        quote = engine.generate_quote(make_request(container_size="6 Yard"))

        assert quote.pricing_source == "Global Rule (Container Override: Any Equipment + 6YD)"
        assert quote.base_rate == pytest.approx(6 * 4.33 * 12)
        assert quote.matched_rate["id"] == "rule-1"

    def test_override_for_other_equipment_is_skipped(self):
        override = ContainerSpecificOverride(equipment_type="Cart", container_size="4YD", price_per_yard=99)
        engine = config_engine(global_pricing_rules=[global_rule(container_specific_pricing=[override])])
        quote = engine.generate_quote(make_request())

        assert quote.pricing_source == "Global Rule (Small Container Price)"
        assert quote.base_rate == pytest.approx(4 * 4.33 * 10)

    def test_large_container_price(self):
        engine = config_engine(global_pricing_rules=[global_rule()])
        quote = engine.generate_quote(make_request(container_size="8YD"))

        assert quote.pricing_source == "Global Rule (Large Container Price)"
        assert quote.base_rate == pytest.approx(8 * 4.33 * 8)

    def test_first_matching_rule_wins(self):
        recycling = global_rule(id="recycling", material_type="Recycling", small_container_price_per_yard=3)
        general = global_rule(id="general")
        engine = config_engine(global_pricing_rules=[recycling, general])

        assert engine.generate_quote(make_request(material_type="Recycling")).matched_rate["id"] == "recycling"
        assert engine.generate_quote(make_request()).matched_rate["id"] == "general"

    def test_oversized_container_fails(self):
        engine = config_engine(global_pricing_rules=[global_rule()])
        quote = engine.generate_quote(make_request(container_size="20YD"))

        assert quote.status == "failed"
        assert quote.failure_reason.startswith("Oversized container (20YD)")

    def test_roll_off_without_roll_off_pricing_fails(self):
        engine = config_engine(global_pricing_rules=[global_rule()])
        quote = engine.generate_quote(make_request(container_size="30YD", equipment_type="Roll-off"))
        assert quote.failure_reason == ROLL_OFF_CONFIG_MISSING

    def test_unknown_size_fails(self):
        engine = config_engine(global_pricing_rules=[global_rule()])
        quote = engine.generate_quote(make_request(container_size="5YD"))
        assert quote.failure_reason.startswith("Unknown container size (5YD)")

    def test_city_franchise_fee_wins(self):
        engine = config_engine(global_pricing_rules=[global_rule(franchise_fee_percent=2)])

        assert engine.generate_quote(make_request(city="Dallas")).franchise_fee_rate == 5
        assert engine.generate_quote(make_request()).franchise_fee_rate == 2

    def test_roll_off_rule(self):
        pricing = RollOffPricing(delivery_fee=150, monthly_rent=200, haul_rate=300, disposal_per_ton=45, deposit=50)
        roll_off = global_rule(id="roll-off", equipment_type="Roll-off", is_roll_off_or_compactor=True,
                               roll_off_pricing=pricing)
        engine = config_engine(global_pricing_rules=[roll_off, global_rule()])

        quote = engine.generate_quote(make_request(container_size="30YD", equipment_type="Roll Off", bin_quantity=2))

        assert quote.pricing_source == "Roll-off/Compactor Pricing"
        assert quote.is_roll_off_or_compactor is True
        assert quote.subtotal == pytest.approx(400)
        assert quote.local_tax_amount == pytest.approx(33)
        assert quote.total_monthly_cost == pytest.approx(433)
        assert quote.total_price == pytest.approx(633)
        assert quote.base_rate == pytest.approx(345)

        front_load = engine.generate_quote(make_request())
        assert front_load.matched_rate["id"] == "rule-1"


class TestDefaultConfig:
    def test_single_location_uses_single_price(self):
        engine = config_engine(small_container_price=10, large_container_price=8)
        engine.set_service_area_data(ServiceAreaVerificationData(total_processed=1))

        quote = engine.generate_quote(make_request(container_size="8YD"))

        assert engine.is_single_location is True
        assert quote.pricing_source == "Default Config (Single Price/YD)"
        assert quote.base_rate == pytest.approx(8 * 4.33 * 10)
        assert quote.matched_rate is None

    def test_container_specific_rule(self):
        rule = ContainerSpecificPricingRule(equipment_type="Front-Load Container", container_size="6 Yard",
                                            price_per_yard=11)
        engine = config_engine(small_container_price=10, large_container_price=8,
                               container_specific_pricing_rules=[rule])
        quote = engine.generate_quote(make_request(container_size="6YD"))

        assert quote.pricing_source == "Default Config (Container-Specific Rule)"
        assert quote.base_rate == pytest.approx(6 * 4.33 * 11)

    def test_small_price_with_fees(self):
        engine = config_engine(small_container_price=10, large_container_price=8, fuel_surcharge=10, delivery_fee=75)
        quote = engine.generate_quote(make_request())

        assert quote.pricing_source == "Default Config (Small Container Price)"
        assert quote.base_rate == pytest.approx(173.2)
        assert quote.fuel_surcharge_amount == pytest.approx(17.32)
        assert quote.local_tax_rate == 8.25
        assert quote.delivery_fee == 75

    def test_unpriced_config_fails(self):
        quote = config_engine().generate_quote(make_request())
        assert quote.status == "failed"
        assert quote.failure_reason.startswith("No pricing configured for 4YD")


class TestAdditionalFees:
    fees = [
        AdditionalFee(category="Lock", price=10, frequency="monthly"),
        AdditionalFee(category="Enclosure", price=5, frequency="weekly", location_id="request-2",
                      location_display="Acme - 2 Main St"),
        AdditionalFee(category="Setup", price=99, frequency="one-time"),
    ]

    def test_location_fees_only_apply_to_their_location(self):
        engine = PricingEngine()

        total, details = engine.calculate_additional_fees(make_request(id="request-1"), self.fees)
        assert total == pytest.approx(10)
        assert [d.category for d in details] == ["Lock", "Setup"]

        total, details = engine.calculate_additional_fees(make_request(id="request-2"), self.fees)
        assert total == pytest.approx(10 + 5 * 4.33)
        assert details[1].location_specific is True

    def test_franchise_fee_includes_add_ons(self):
        engine = config_engine(small_container_price=10, large_container_price=8, fuel_surcharge=0,
                               additional_fees=self.fees)
        quote = engine.generate_quote(make_request(city="Dallas"))

        assert quote.add_ons_cost == pytest.approx(10)
        assert quote.franchise_fee_amount == pytest.approx((173.2 + 10) * 0.05)


class TestBrokerQuote:
    def broker_engine(self, **rate):
        defaults = {"city": "Temple", "state": "TX", "equipment_type": "Front-Load Container",
                    "container_size": "4YD", "frequency": "1x/week", "base_rate": 100,
                    "delivery_fee": 0, "extra_pickup_rate": 0}
        defaults.update(rate)
        return PricingEngine(PricingLogic(type="broker", broker_rates=[BrokerRate(**defaults)]))

    def test_flat_franchise_fee_replaces_percentage(self):
        quote = self.broker_engine(franchise_fee=7).generate_quote(make_request(bin_quantity=2))

        assert quote.pricing_source == "Broker Rate Sheet"
        assert quote.base_rate == 200
        assert quote.franchise_fee_rate == 0
        assert quote.franchise_fee_amount == 7
        assert quote.fuel_surcharge_amount == pytest.approx(30)
        assert quote.subtotal == pytest.approx(237)
        assert quote.local_tax_amount == pytest.approx(237 * 0.0825)

    def test_flat_tax(self):
        quote = self.broker_engine(local_tax=12).generate_quote(make_request())
        assert quote.local_tax_rate == 0
        assert quote.local_tax_amount == 12

    def test_missing_city_fails(self):
        quote = self.broker_engine().generate_quote(make_request(city=""))
        assert quote.failure_reason == "Service request missing required city or state information"

    def test_no_rate_fails(self):
        quote = self.broker_engine().generate_quote(make_request(city="Belton"))
        assert quote.failure_reason == "No broker rate found for Belton, TX"


class TestFailuresAndBulk:
    def test_no_pricing_logic(self):
        quote = PricingEngine().generate_quote(make_request())

        assert quote.status == "failed"
        assert quote.pricing_source == "Failed"
        assert quote.failure_reason == "Pricing logic not configured"
        assert quote.number_of_units == 0

    def test_bulk_splits_successes_and_failures(self):
        engine = PricingEngine(default_pricing_logic())
        result = engine.generate_bulk_quotes([
            make_request(id="request-1", city="Dallas", container_size="2YD"),
            make_request(id="request-2", city="Midland"),
            make_request(id="request-3", city="Waco"),
        ])

        assert result.total_processed == 3
        assert result.success_count == 2
        assert result.failure_count == 1
        assert [q.id for q in result.quotes] == ["quote-request-1", "quote-request-3"]
        assert result.failed_quotes[0].id == "quote-request-2"
