"""Domain types, models, and errors for the rate card engine."""

from ratecard.domain.errors import (
    FormulaError,
    InvalidInputError,
    LastRowError,
    NoCardSelectedError,
    RateCardError,
    ReadonlyColumnError,
    UnknownColumnError,
    UnknownRowError,
    WorksheetError,
)
from ratecard.domain.models import (
    Breakdown,
    CalculationInput,
    CalculationResult,
    CostPlusPricing,
    FlatRatePricing,
    LineItem,
    PricingParameters,
    RateCard,
    SeatBasedPricing,
    SubscriptionPricing,
    Tier,
    TieredPricing,
    VolumeDiscount,
    parse_pricing_data,
)
from ratecard.domain.types import (
    BillingPeriod,
    ColumnType,
    ComputedFormula,
    HistoryAction,
    PricingModel,
    ValidationRule,
)

__all__ = [
    "BillingPeriod",
    "Breakdown",
    "CalculationInput",
    "CalculationResult",
    "ColumnType",
    "ComputedFormula",
    "CostPlusPricing",
    "FlatRatePricing",
    "FormulaError",
    "HistoryAction",
    "InvalidInputError",
    "LastRowError",
    "LineItem",
    "NoCardSelectedError",
    "PricingModel",
    "PricingParameters",
    "RateCard",
    "RateCardError",
    "ReadonlyColumnError",
    "SeatBasedPricing",
    "SubscriptionPricing",
    "Tier",
    "TieredPricing",
    "UnknownColumnError",
    "UnknownRowError",
    "ValidationRule",
    "VolumeDiscount",
    "WorksheetError",
    "parse_pricing_data",
]
