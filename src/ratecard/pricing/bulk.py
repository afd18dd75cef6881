"""Bulk calculation across several rate cards.

Each request is priced independently: a missing card, invalid pricing data or
a rejected input fails that item only and the rest of the batch proceeds.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from ratecard.config import get_settings
from ratecard.domain.errors import InvalidInputError
from ratecard.domain.models import CalculationInput, CalculationResult, RateCard
from ratecard.domain.numbers import ONE, ZERO, round_money
from ratecard.domain.types import BillingPeriod
from ratecard.pricing.calculators import calculate_price

logger = structlog.get_logger()


class BulkCalculationRequest(BaseModel):
    """One item of a bulk calculation."""

    model_config = ConfigDict(frozen=True)

    rate_card_id: str
    quantity: Decimal = ONE
    base_cost: Decimal | None = None
    billing_period: BillingPeriod | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    label: str | None = None


class BulkItemResult(BaseModel):
    """Outcome of one bulk calculation item.

    Attributes:
        success: Whether the item was priced.
        rate_card_id: The card the item asked for.
        label: Caller-supplied label, echoed back.
        calculation: The result when ``success`` is True.
        error: Why the item failed when ``success`` is False.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    rate_card_id: str
    label: str | None = None
    calculation: CalculationResult | None = None
    error: str | None = None


class BulkCalculationSummary(BaseModel):
    """Aggregate of a bulk calculation."""

    model_config = ConfigDict(frozen=True)

    total: int
    successful: int
    failed: int
    total_amount: Decimal
    results: list[BulkItemResult]


def calculate_bulk(
    rate_cards: Iterable[RateCard],
    requests: list[BulkCalculationRequest],
    limit: int | None = None,
) -> BulkCalculationSummary:
    """Price a batch of requests against a set of rate cards.

    Only active cards are eligible; a request naming an inactive or unknown
    card fails with "Rate card not found or inactive".

    Args:
        rate_cards: Cards available to the caller.
        requests: The items to price, in order.
        limit: Maximum batch size. Defaults to ``bulk_calculation_limit``.

    Returns:
        Per-item results in request order plus summary counts and the
        rounded sum of successful totals.

    Raises:
        InvalidInputError: If the batch is empty or exceeds the limit.
    """
    max_items = limit if limit is not None else get_settings().bulk_calculation_limit
    if not requests:
        raise InvalidInputError("At least one calculation is required")
    if len(requests) > max_items:
        raise InvalidInputError(f"Maximum {max_items} calculations allowed per request")

    cards = {card.id: card for card in rate_cards if card.is_active}
    results: list[BulkItemResult] = []

    for request in requests:
        card = cards.get(request.rate_card_id)
        if card is None:
            results.append(
                BulkItemResult(
                    success=False,
                    rate_card_id=request.rate_card_id,
                    label=request.label,
                    error="Rate card not found or inactive",
                )
            )
            continue

        calculation_input = CalculationInput(
            quantity=request.quantity,
            base_cost=request.base_cost,
            billing_period=request.billing_period,
            parameters=request.parameters,
        )
        try:
            calculation = calculate_price(card.pricing_model, card.data, calculation_input)
        except InvalidInputError as exc:
            results.append(
                BulkItemResult(
                    success=False,
                    rate_card_id=request.rate_card_id,
                    label=request.label,
                    error=str(exc),
                )
            )
            continue

        results.append(
            BulkItemResult(
                success=True,
                rate_card_id=request.rate_card_id,
                label=request.label,
                calculation=calculation,
            )
        )

    successful = [r for r in results if r.success and r.calculation is not None]
    total_amount = sum((r.calculation.total_price for r in successful), ZERO)  # type: ignore[union-attr]
    summary = BulkCalculationSummary(
        total=len(results),
        successful=len(successful),
        failed=len(results) - len(successful),
        total_amount=round_money(total_amount),
        results=results,
    )
    logger.info(
        "bulk_calculation_completed",
        total=summary.total,
        successful=summary.successful,
        failed=summary.failed,
        total_amount=str(summary.total_amount),
    )
    return summary
