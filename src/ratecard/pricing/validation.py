"""Structural validation of raw pricing data.

Used by the persistence and import/export collaborators before a rate card is
stored or priced: the raw (untyped) data must carry every required field with
a numeric value in range for its pricing model.
"""

import structlog

from ratecard.domain.errors import InvalidInputError
from ratecard.domain.models import parse_pricing_data

logger = structlog.get_logger()


def validate_pricing_data(pricing_model: object, pricing_data: object) -> bool:
    """Check raw pricing data against the structure of its pricing model.

    Checks required fields, numeric types, non-negative prices, percentages
    within ``[0, 100]``, tier bounds and tier non-overlap.

    Args:
        pricing_model: The pricing model tag (e.g. ``"tiered"``).
        pricing_data: The raw parameter mapping.

    Returns:
        True if the data is valid for the model, False otherwise (including
        for unsupported model tags).
    """
    try:
        parse_pricing_data(pricing_model, pricing_data)  # type: ignore[arg-type]
    except InvalidInputError as exc:
        logger.debug(
            "pricing_data_invalid",
            pricing_model=str(pricing_model),
            reason=str(exc),
        )
        return False
    return True
