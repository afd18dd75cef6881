"""Pricing calculators for the five rate card pricing models.

Re-exports key functions and types for convenient access:
    from ratecard.pricing import calculate_price, validate_pricing_data
"""

from ratecard.pricing.bulk import (
    BulkCalculationRequest,
    BulkCalculationSummary,
    BulkItemResult,
    calculate_bulk,
)
from ratecard.pricing.calculators import (
    calculate_cost_plus_price,
    calculate_flat_rate_price,
    calculate_price,
    calculate_seat_based_price,
    calculate_subscription_price,
    calculate_tiered_price,
)
from ratecard.pricing.validation import validate_pricing_data

__all__ = [
    "BulkCalculationRequest",
    "BulkCalculationSummary",
    "BulkItemResult",
    "calculate_bulk",
    "calculate_cost_plus_price",
    "calculate_flat_rate_price",
    "calculate_price",
    "calculate_seat_based_price",
    "calculate_subscription_price",
    "calculate_tiered_price",
    "validate_pricing_data",
]
