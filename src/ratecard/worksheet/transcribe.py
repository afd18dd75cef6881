"""Transcribe worksheet rows into calculator pricing parameters.

A finished worksheet is saved as a rate card, so its rows have to become the
same parameter shapes the pricing calculators consume.
"""

from collections.abc import Sequence
from typing import Any

from ratecard.domain.errors import InvalidInputError
from ratecard.domain.models import parse_pricing_data, resolve_pricing_model
from ratecard.domain.numbers import HUNDRED, ONE, ZERO, is_blank, parse_number
from ratecard.domain.types import BillingPeriod, PricingModel
from ratecard.worksheet.models import Row
from ratecard.worksheet.rules import parse_seat_range


def _text(row: Row, key: str) -> str:
    value = row.value(key)
    return "" if is_blank(value) else str(value).strip()


def _tiered(rows: Sequence[Row]) -> dict[str, Any]:
    tiers = []
    for row in rows:
        maximum = parse_number(row.value("maxQty"))
        tiers.append(
            {
                "min": parse_number(row.value("minQty")),
                "max": maximum if maximum > ZERO else None,
                "pricePerUnit": parse_number(row.value("pricePerUnit")),
            }
        )
    return {"tiers": sorted(tiers, key=lambda tier: tier["min"])}


def _seat_based(rows: Sequence[Row]) -> dict[str, Any]:
    ordered = sorted(rows, key=lambda row: (parse_seat_range(row.value("seatRange")) or (0, None))[0])
    discounts = []
    for row in ordered:
        percent = parse_number(row.value("discount"))
        seat_range = parse_seat_range(row.value("seatRange"))
        if percent > ZERO and seat_range is not None:
            discounts.append({"minSeats": seat_range[0], "discountPercent": percent})
    return {
        "pricePerSeat": parse_number(ordered[0].value("pricePerSeat")),
        "volumeDiscounts": discounts,
    }


def _flat_rate(rows: Sequence[Row]) -> dict[str, Any]:
    price = sum(
        (parse_number(row.value("oneTime")) + parse_number(row.value("recurring")) for row in rows),
        ZERO,
    )
    period = _text(rows[0], "period").lower()
    return {
        "price": price,
        "billingPeriod": period if period in set(BillingPeriod) else None,
        "description": _text(rows[0], "service") or None,
    }


def _cost_plus(rows: Sequence[Row]) -> dict[str, Any]:
    base_cost = sum((parse_number(row.value("baseCost")) for row in rows), ZERO)
    final_price = sum((parse_number(row.value("finalPrice")) for row in rows), ZERO)
    if base_cost > ZERO:
        markup = (final_price / base_cost - ONE) * HUNDRED
    else:
        markup = parse_number(rows[0].value("markup"))
    return {"baseCost": base_cost, "markupPercent": markup}


def _subscription(rows: Sequence[Row]) -> dict[str, Any]:
    plan = rows[0]
    annual = parse_number(plan.value("annual"))
    features = [feature.strip() for feature in _text(plan, "features").split(",") if feature.strip()]
    return {
        "monthlyPrice": parse_number(plan.value("monthly")),
        "yearlyPrice": annual if annual > ZERO else None,
        "features": features,
    }


_TRANSCRIBERS = {
    PricingModel.TIERED: _tiered,
    PricingModel.SEAT_BASED: _seat_based,
    PricingModel.FLAT_RATE: _flat_rate,
    PricingModel.COST_PLUS: _cost_plus,
    PricingModel.SUBSCRIPTION: _subscription,
}


def to_pricing_parameters(pricing_model: PricingModel | str, rows: Sequence[Row]) -> Any:
    """Build calculator parameters from worksheet rows.

    - tiered: one tier per row, sorted by minimum; a max of 0 is unbounded.
    - seat-based: the lowest range's seat price; one volume discount per row
      with a discount, starting at the range's first seat.
    - flat-rate: one-time plus recurring amounts over all rows; the first
      row's period and service name.
    - cost-plus: summed base costs with the effective markup of the summed
      final prices.
    - subscription: prices and comma-separated features of the first plan.

    Returns:
        The typed parameter model for ``pricing_model``.

    Raises:
        InvalidInputError: If there are no rows, the model is unsupported, or
            the rows do not form valid parameters (e.g. overlapping tiers).
    """
    model = resolve_pricing_model(pricing_model)
    if not rows:
        raise InvalidInputError("A worksheet needs at least one row to build pricing parameters")
    return parse_pricing_data(model, _TRANSCRIBERS[model](rows))
