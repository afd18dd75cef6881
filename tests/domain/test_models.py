"""Tests for rate card domain models and pricing parameter parsing."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from ratecard.domain.errors import InvalidInputError
from ratecard.domain.models import (
    CalculationInput,
    RateCard,
    SeatBasedPricing,
    SubscriptionPricing,
    Tier,
    TieredPricing,
    parse_pricing_data,
    resolve_pricing_model,
)
from ratecard.domain.types import BillingPeriod, PricingModel


class TestTier:
    """Tests for a single tier's bounds and label."""

    def test_aliases_min_and_max(self):
        tier = Tier.model_validate({"min": 1, "max": 10, "pricePerUnit": "5.50"})
        assert tier.min_quantity == Decimal("1")
        assert tier.max_quantity == Decimal("10")
        assert tier.price_per_unit == Decimal("5.50")

    def test_float_price_goes_through_str(self):
        tier = Tier.model_validate({"min": 0, "max": None, "pricePerUnit": 0.1})
        assert tier.price_per_unit == Decimal("0.1")

    def test_max_below_min_rejected(self):
        with pytest.raises(ValidationError, match="must not be below min"):
            Tier.model_validate({"min": 10, "max": 5, "pricePerUnit": 1})

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            Tier.model_validate({"min": 1, "max": 5, "pricePerUnit": -1})

    def test_boolean_is_not_a_number(self):
        with pytest.raises(ValidationError):
            Tier.model_validate({"min": True, "max": 5, "pricePerUnit": 1})

    @pytest.mark.parametrize(
        ("maximum", "expected"),
        [(Decimal("10"), "1-10"), (None, "1+")],
        ids=["bounded", "unbounded"],
    )
    def test_label(self, maximum, expected):
        tier = Tier(min_quantity=Decimal("1"), max_quantity=maximum, price_per_unit=Decimal("1"))
        assert tier.label == expected


class TestTieredPricing:
    """Tests for tier structure validation."""

    def test_sorted_tiers_orders_by_min(self):
        pricing = TieredPricing.model_validate(
            {
                "tiers": [
                    {"min": 11, "max": None, "pricePerUnit": 3},
                    {"min": 1, "max": 10, "pricePerUnit": 5},
                ]
            }
        )
        assert [t.min_quantity for t in pricing.sorted_tiers] == [Decimal("1"), Decimal("11")]

    def test_overlapping_tiers_rejected(self):
        with pytest.raises(ValidationError, match="overlaps"):
            TieredPricing.model_validate(
                {
                    "tiers": [
                        {"min": 1, "max": 10, "pricePerUnit": 5},
                        {"min": 10, "max": 20, "pricePerUnit": 3},
                    ]
                }
            )

    def test_unbounded_tier_must_be_last(self):
        with pytest.raises(ValidationError, match="must be the last tier"):
            TieredPricing.model_validate(
                {
                    "tiers": [
                        {"min": 1, "max": None, "pricePerUnit": 5},
                        {"min": 11, "max": 20, "pricePerUnit": 3},
                    ]
                }
            )

    def test_empty_tiers_rejected(self):
        with pytest.raises(ValidationError):
            TieredPricing.model_validate({"tiers": []})


class TestParameterModels:
    """Tests for the non-tiered parameter shapes."""

    def test_discount_percent_above_100_rejected(self):
        with pytest.raises(ValidationError):
            SeatBasedPricing.model_validate(
                {"pricePerSeat": 10, "volumeDiscounts": [{"minSeats": 5, "discountPercent": 120}]}
            )

    def test_subscription_optional_fields_default(self):
        pricing = SubscriptionPricing.model_validate({"monthlyPrice": 29})
        assert pricing.yearly_price is None
        assert pricing.setup_fee is None
        assert pricing.features == []

    def test_snake_case_names_accepted(self):
        pricing = SeatBasedPricing(price_per_seat=Decimal("10"), minimum_seats=5)
        assert pricing.minimum_seats == 5

    def test_models_are_frozen(self, tiered_pricing):
        with pytest.raises(ValidationError):
            tiered_pricing.tiers = []


class TestParsePricingData:
    """Tests for tag-driven parsing of raw pricing data."""

    def test_parses_into_the_tagged_variant(self):
        parsed = parse_pricing_data("cost-plus", {"baseCost": "80", "markupPercent": 25})
        assert parsed.model == "cost-plus"
        assert parsed.base_cost == Decimal("80")

    def test_model_key_in_data_is_overridden_by_tag(self):
        parsed = parse_pricing_data(PricingModel.FLAT_RATE, {"model": "tiered", "price": 10})
        assert parsed.model == "flat-rate"

    def test_unsupported_model_raises(self):
        with pytest.raises(InvalidInputError, match="Unsupported pricing model: barter"):
            parse_pricing_data("barter", {})

    def test_invalid_data_raises_invalid_input(self):
        with pytest.raises(InvalidInputError, match="Invalid seat-based pricing data"):
            parse_pricing_data("seat-based", {"pricePerSeat": "lots"})

    def test_non_mapping_raises(self):
        with pytest.raises(InvalidInputError, match="must be an object"):
            parse_pricing_data("tiered", [1, 2, 3])

    def test_resolve_pricing_model(self):
        assert resolve_pricing_model("subscription") is PricingModel.SUBSCRIPTION


class TestRateCard:
    """Tests for the rate card envelope."""

    def test_data_parsed_by_pricing_model(self):
        card = RateCard.model_validate(
            {
                "id": "rc-1",
                "name": "Consulting",
                "pricingModel": "cost-plus",
                "data": {"baseCost": 100, "markupPercent": 20},
            }
        )
        assert card.pricing_model is PricingModel.COST_PLUS
        assert card.data.markup_percent == Decimal("20")
        assert card.currency == "USD"
        assert card.is_active is True

    def test_data_shape_must_match_model(self):
        with pytest.raises(ValidationError):
            RateCard.model_validate(
                {
                    "id": "rc-1",
                    "name": "Broken",
                    "pricingModel": "tiered",
                    "data": {"baseCost": 100, "markupPercent": 20},
                }
            )

    def test_mismatched_explicit_tag_rejected(self, flat_pricing):
        with pytest.raises(ValidationError, match="card declares"):
            RateCard(id="rc-1", name="Mismatch", pricing_model=PricingModel.TIERED, data=flat_pricing)

    def test_blank_name_rejected(self, flat_pricing):
        with pytest.raises(ValidationError, match="name must not be empty"):
            RateCard(id="rc-1", name="  ", pricing_model=PricingModel.FLAT_RATE, data=flat_pricing)

    def test_dumps_camel_case(self, tiered_card):
        dumped = tiered_card.model_dump(by_alias=True)
        assert dumped["pricingModel"] == "tiered"
        assert dumped["isActive"] is True
        assert dumped["data"]["tiers"][0]["pricePerUnit"] == Decimal("5")


class TestCalculationInput:
    """Tests for calculation input coercion."""

    def test_defaults(self):
        calculation_input = CalculationInput()
        assert calculation_input.quantity == Decimal("1")
        assert calculation_input.base_cost is None
        assert calculation_input.billing_period is None

    def test_coerces_numbers_and_period(self):
        calculation_input = CalculationInput(quantity="15", base_cost=12.5, billing_period="yearly")
        assert calculation_input.quantity == Decimal("15")
        assert calculation_input.base_cost == Decimal("12.5")
        assert calculation_input.billing_period is BillingPeriod.YEARLY

    def test_non_numeric_quantity_rejected(self):
        with pytest.raises(ValidationError):
            CalculationInput(quantity="many")
