"""Shared pytest fixtures for the rate card engine test suite."""

from decimal import Decimal

import pytest

from ratecard.config import get_settings
from ratecard.domain.models import (
    CostPlusPricing,
    FlatRatePricing,
    RateCard,
    SeatBasedPricing,
    SubscriptionPricing,
    TieredPricing,
)
from ratecard.domain.types import PricingModel


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> None:
    """Clear get_settings lru_cache so environment overrides apply per test."""
    get_settings.cache_clear()


@pytest.fixture
def tiered_pricing() -> TieredPricing:
    """Two tiers: 1-10 at 5.00, 11+ at 3.00."""
    return TieredPricing.model_validate(
        {
            "tiers": [
                {"min": 1, "max": 10, "pricePerUnit": 5},
                {"min": 11, "max": None, "pricePerUnit": 3},
            ]
        }
    )


@pytest.fixture
def seat_pricing() -> SeatBasedPricing:
    """10.00 per seat with 5% off from 10 seats and 15% off from 20 seats."""
    return SeatBasedPricing.model_validate(
        {
            "pricePerSeat": 10,
            "volumeDiscounts": [
                {"minSeats": 10, "discountPercent": 5},
                {"minSeats": 20, "discountPercent": 15},
            ],
        }
    )


@pytest.fixture
def flat_pricing() -> FlatRatePricing:
    """A 499.00 monthly retainer."""
    return FlatRatePricing.model_validate(
        {"price": "499.00", "billingPeriod": "monthly", "description": "Retainer"}
    )


@pytest.fixture
def cost_plus_pricing() -> CostPlusPricing:
    """Base cost 80.00 with a 25% markup."""
    return CostPlusPricing(base_cost=Decimal("80"), markup_percent=Decimal("25"))


@pytest.fixture
def subscription_pricing() -> SubscriptionPricing:
    """29.00 monthly or 290.00 yearly, with a 49.00 setup fee."""
    return SubscriptionPricing.model_validate(
        {
            "monthlyPrice": 29,
            "yearlyPrice": 290,
            "setupFee": 49,
            "features": ["API access", "Email support"],
        }
    )


@pytest.fixture
def tiered_card(tiered_pricing: TieredPricing) -> RateCard:
    """An active tiered rate card."""
    return RateCard(
        id="card-tiered",
        name="API Calls",
        pricing_model=PricingModel.TIERED,
        data=tiered_pricing,
    )


@pytest.fixture
def seat_card(seat_pricing: SeatBasedPricing) -> RateCard:
    """An active seat-based rate card."""
    return RateCard(
        id="card-seats",
        name="Team Seats",
        pricing_model=PricingModel.SEAT_BASED,
        data=seat_pricing,
    )


@pytest.fixture
def cost_plus_card(cost_plus_pricing: CostPlusPricing) -> RateCard:
    """An active cost-plus rate card."""
    return RateCard(
        id="card-cost-plus",
        name="Hardware",
        pricing_model=PricingModel.COST_PLUS,
        data=cost_plus_pricing,
    )


@pytest.fixture
def inactive_card(flat_pricing: FlatRatePricing) -> RateCard:
    """A flat-rate card that has been deactivated."""
    return RateCard(
        id="card-retired",
        name="Retired Retainer",
        pricing_model=PricingModel.FLAT_RATE,
        data=flat_pricing,
        is_active=False,
    )
