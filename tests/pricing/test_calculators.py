"""Tests for the five pricing calculators and the model dispatcher."""

from decimal import Decimal

import pytest

from ratecard.domain.errors import InvalidInputError
from ratecard.domain.models import CalculationInput, SeatBasedPricing, TieredPricing
from ratecard.domain.types import BillingPeriod, PricingModel
from ratecard.pricing.calculators import (
    calculate_cost_plus_price,
    calculate_flat_rate_price,
    calculate_price,
    calculate_seat_based_price,
    calculate_subscription_price,
    calculate_tiered_price,
)


def _tiers(*tiers: tuple[int, int | None, str]) -> TieredPricing:
    return TieredPricing.model_validate(
        {"tiers": [{"min": lo, "max": hi, "pricePerUnit": price} for lo, hi, price in tiers]}
    )


class TestTieredPrice:
    """Tests for graduated tier pricing."""

    def test_quantity_spanning_two_tiers(self, tiered_pricing):
        result = calculate_tiered_price(tiered_pricing, 15)

        assert result.total_price == Decimal("65.00")
        assert result.applied_model is PricingModel.TIERED
        assert [line.quantity for line in result.breakdown.details] == [Decimal("10"), Decimal("5")]
        assert [line.subtotal for line in result.breakdown.details] == [Decimal("50"), Decimal("15")]
        assert result.metadata["tiers_used"] == 2
        assert result.metadata["effective_average_price"] == Decimal("4.33")

    def test_quantity_within_first_tier(self, tiered_pricing):
        result = calculate_tiered_price(tiered_pricing, 4)
        assert result.total_price == Decimal("20.00")
        assert result.metadata["tiers_used"] == 1

    def test_quantity_at_tier_boundary(self, tiered_pricing):
        result = calculate_tiered_price(tiered_pricing, 11)
        assert result.total_price == Decimal("53.00")

    def test_last_bounded_tier_absorbs_remainder(self):
        pricing = _tiers((1, 10, "5"), (11, 20, "3"))
        result = calculate_tiered_price(pricing, 25)
        assert result.total_price == Decimal("95.00")
        assert result.metadata["unallocated_quantity"] == Decimal("0")

    def test_quantity_below_first_tier_is_unallocated(self):
        pricing = _tiers((10, None, "2"))
        result = calculate_tiered_price(pricing, 5)
        assert result.total_price == Decimal("0.00")
        assert result.breakdown.details == []
        assert result.metadata["unallocated_quantity"] == Decimal("5")

    @pytest.mark.parametrize(
        "quantity",
        [1, 7, 10, 11, 12, 50, 999, Decimal("0.5"), Decimal("10.5"), Decimal("12.25")],
        ids=["one", "seven", "ten", "eleven", "twelve", "fifty", "large", "half", "ten_and_a_half", "fractional"],
    )
    def test_tier_quantities_sum_to_requested(self, tiered_pricing, quantity):
        result = calculate_tiered_price(tiered_pricing, quantity)
        details = result.breakdown.details

        assert sum(line.quantity for line in details) == Decimal(quantity)
        expected = sum(line.quantity * line.unit_price for line in details)
        assert result.total_price == expected.quantize(Decimal("0.01"))

    def test_fractional_quantity_crosses_boundary(self, tiered_pricing):
        result = calculate_tiered_price(tiered_pricing, Decimal("10.5"))

        assert [line.quantity for line in result.breakdown.details] == [Decimal("10"), Decimal("0.5")]
        assert result.total_price == Decimal("51.50")
        assert result.metadata["unallocated_quantity"] == Decimal("0")

    def test_gap_between_tiers_is_charged_at_next_tier(self):
        pricing = _tiers((1, 10, "5"), (20, None, "3"))
        result = calculate_tiered_price(pricing, 12)

        assert [line.quantity for line in result.breakdown.details] == [Decimal("10"), Decimal("2")]
        assert result.total_price == Decimal("56.00")

    def test_too_large_quantity_raises_invalid_input(self, tiered_pricing):
        with pytest.raises(InvalidInputError, match="too large"):
            calculate_tiered_price(tiered_pricing, 10**26)

    @pytest.mark.parametrize("quantity", [0, -3], ids=["zero", "negative"])
    def test_non_positive_quantity_raises(self, tiered_pricing, quantity):
        with pytest.raises(InvalidInputError, match="quantity must be positive"):
            calculate_tiered_price(tiered_pricing, quantity)

    def test_non_numeric_quantity_raises(self, tiered_pricing):
        with pytest.raises(InvalidInputError, match="quantity must be a number"):
            calculate_tiered_price(tiered_pricing, "lots")


class TestSeatBasedPrice:
    """Tests for per-seat pricing with minimums and volume discounts."""

    def test_twelve_seats_gets_five_percent(self, seat_pricing):
        result = calculate_seat_based_price(seat_pricing, 12)

        assert result.total_price == Decimal("114.00")
        assert result.breakdown.base_amount == Decimal("120")
        assert result.breakdown.discount_amount == Decimal("6")
        assert result.metadata["discount_percent"] == Decimal("5")

    def test_below_every_discount_pays_full_price(self, seat_pricing):
        result = calculate_seat_based_price(seat_pricing, 3)
        assert result.total_price == Decimal("30.00")
        assert result.breakdown.discount_amount == Decimal("0")
        assert len(result.breakdown.details) == 1

    def test_highest_discount_wins_not_highest_threshold(self):
        pricing = SeatBasedPricing.model_validate(
            {
                "pricePerSeat": 10,
                "volumeDiscounts": [
                    {"minSeats": 10, "discountPercent": 20},
                    {"minSeats": 20, "discountPercent": 10},
                ],
            }
        )
        result = calculate_seat_based_price(pricing, 25)
        assert result.metadata["discount_percent"] == Decimal("20")
        assert result.total_price == Decimal("200.00")

    def test_minimum_seats_applied(self):
        pricing = SeatBasedPricing.model_validate({"pricePerSeat": 10, "minimumSeats": 5})
        result = calculate_seat_based_price(pricing, 2)

        assert result.total_price == Decimal("50.00")
        assert result.metadata["effective_seats"] == Decimal("5")
        assert result.metadata["minimum_seats_applied"] is True

    def test_zero_seats_raises(self, seat_pricing):
        with pytest.raises(InvalidInputError, match="seats must be positive"):
            calculate_seat_based_price(seat_pricing, 0)


class TestFlatRatePrice:
    """Tests for flat-rate pricing."""

    def test_price_times_quantity(self, flat_pricing):
        result = calculate_flat_rate_price(flat_pricing, 2)
        assert result.total_price == Decimal("998.00")
        assert result.metadata["billing_period"] == BillingPeriod.MONTHLY

    def test_quantity_defaults_to_one(self, flat_pricing):
        assert calculate_flat_rate_price(flat_pricing).total_price == Decimal("499.00")

    def test_total_beyond_cent_precision_raises_invalid_input(self, flat_pricing):
        with pytest.raises(InvalidInputError, match="Amount is too large to price"):
            calculate_flat_rate_price(flat_pricing, 10**26)


class TestCostPlusPrice:
    """Tests for cost-plus pricing."""

    def test_markup_on_stored_base_cost(self, cost_plus_pricing):
        result = calculate_cost_plus_price(cost_plus_pricing, 3)

        assert result.total_price == Decimal("300.00")
        assert result.breakdown.base_amount == Decimal("240")
        assert result.breakdown.markup_amount == Decimal("60")
        assert result.metadata["unit_price"] == Decimal("100")

    def test_base_cost_override_leaves_parameters_alone(self, cost_plus_pricing):
        result = calculate_cost_plus_price(cost_plus_pricing, 1, base_cost="200")

        assert result.total_price == Decimal("250.00")
        assert cost_plus_pricing.base_cost == Decimal("80")

    def test_zero_override_is_honoured(self, cost_plus_pricing):
        result = calculate_cost_plus_price(cost_plus_pricing, 1, base_cost=0)
        assert result.total_price == Decimal("0.00")

    def test_negative_override_raises(self, cost_plus_pricing):
        with pytest.raises(InvalidInputError, match="must not be negative"):
            calculate_cost_plus_price(cost_plus_pricing, 1, base_cost=-5)

    @pytest.mark.parametrize(
        ("base_cost", "markup", "quantity"),
        [("19.99", "12.5", 3), ("0.01", "33", 7), ("1234.56", "0", 2)],
        ids=["fractional_markup", "tiny_cost", "no_markup"],
    )
    def test_total_reproducible_from_breakdown(self, base_cost, markup, quantity):
        from ratecard.domain.models import CostPlusPricing

        pricing = CostPlusPricing(base_cost=Decimal(base_cost), markup_percent=Decimal(markup))
        result = calculate_cost_plus_price(pricing, quantity)
        recombined = result.breakdown.base_amount + result.breakdown.markup_amount
        expected = Decimal(base_cost) * (1 + Decimal(markup) / 100) * quantity

        assert result.total_price == recombined.quantize(Decimal("0.01"))
        assert result.total_price == expected.quantize(Decimal("0.01"))


class TestSubscriptionPrice:
    """Tests for subscription pricing."""

    def test_monthly_by_default(self, subscription_pricing):
        result = calculate_subscription_price(subscription_pricing, 1)

        assert result.total_price == Decimal("78.00")
        assert result.breakdown.setup_fee == Decimal("49")
        assert result.metadata["billing_period"] == BillingPeriod.MONTHLY

    def test_yearly_price_when_requested(self, subscription_pricing):
        result = calculate_subscription_price(subscription_pricing, 1, "yearly")

        assert result.total_price == Decimal("339.00")
        assert result.metadata["monthly_equivalent"] == Decimal("24.17")
        assert result.metadata["features"] == ["API access", "Email support"]

    def test_yearly_falls_back_to_monthly_without_yearly_price(self):
        from ratecard.domain.models import SubscriptionPricing

        pricing = SubscriptionPricing.model_validate({"monthlyPrice": 10})
        result = calculate_subscription_price(pricing, 2, BillingPeriod.YEARLY)

        assert result.total_price == Decimal("20.00")
        assert result.metadata["billing_period"] == BillingPeriod.MONTHLY

    def test_unknown_billing_period_raises(self, subscription_pricing):
        with pytest.raises(InvalidInputError, match="Unsupported billing period"):
            calculate_subscription_price(subscription_pricing, 1, "weekly")


class TestCalculatePrice:
    """Tests for routing by pricing model."""

    def test_routes_raw_data(self):
        result = calculate_price(
            "tiered",
            {"tiers": [{"min": 1, "max": 10, "pricePerUnit": 5}, {"min": 11, "max": None, "pricePerUnit": 3}]},
            CalculationInput(quantity=15),
        )
        assert result.total_price == Decimal("65.00")

    def test_passes_base_cost_override(self, cost_plus_pricing):
        result = calculate_price(
            PricingModel.COST_PLUS, cost_plus_pricing, CalculationInput(quantity=2, base_cost=10)
        )
        assert result.total_price == Decimal("25.00")

    def test_passes_billing_period(self, subscription_pricing):
        result = calculate_price(
            PricingModel.SUBSCRIPTION,
            subscription_pricing,
            CalculationInput(billing_period=BillingPeriod.YEARLY),
        )
        assert result.total_price == Decimal("339.00")

    def test_unsupported_model_raises(self):
        with pytest.raises(InvalidInputError, match="Unsupported pricing model"):
            calculate_price("auction", {}, CalculationInput())

    def test_parameters_of_another_model_raise(self, flat_pricing):
        with pytest.raises(InvalidInputError, match="cannot be priced as tiered"):
            calculate_price(PricingModel.TIERED, flat_pricing, CalculationInput())
