"""Per-model price calculators.

Every calculator is a pure function of its pricing parameters and a quantity
(or seat count) and returns a ``CalculationResult`` with an itemized breakdown.
All arithmetic is Decimal; intermediate sums are exact and only the final
total is quantized to two decimal places with ROUND_HALF_UP rounding.

Tiered boundary rule: tiers are visited in ascending ``min`` order. A tier
spanning ``min``..``max`` holds ``max - min + 1`` units, so the first tier
covers quantities above ``min - 1`` (a 1-10 tier takes 0.5 units as readily as
10). The first tier is entered when the requested quantity exceeds its
``min - 1``; every later tier is entered as soon as the tiers before it are
exhausted and quantity remains. The last tier absorbs whatever remains
regardless of its ``max``. Only quantity that cannot reach the first tier is
left uncharged, reported as ``unallocated_quantity``.
"""

from decimal import Decimal
from typing import Any

from ratecard.domain.errors import InvalidInputError
from ratecard.domain.models import (
    Breakdown,
    CalculationInput,
    CalculationResult,
    CostPlusPricing,
    FlatRatePricing,
    LineItem,
    SeatBasedPricing,
    SubscriptionPricing,
    TieredPricing,
    parse_pricing_data,
    resolve_pricing_model,
)
from ratecard.domain.numbers import HUNDRED, ONE, ZERO, round_money, to_decimal
from ratecard.domain.types import BillingPeriod, PricingModel

MONTHS_PER_YEAR = Decimal("12")


def _validate_quantity(quantity: object, name: str = "quantity") -> Decimal:
    """Validate that a quantity is a positive number.

    Args:
        quantity: The quantity to validate.
        name: Field name used in the error message.

    Returns:
        The quantity as a Decimal.

    Raises:
        InvalidInputError: If the quantity is not numeric, zero or negative.
    """
    try:
        value = to_decimal(quantity)
    except ValueError:
        raise InvalidInputError(f"{name} must be a number, got {quantity!r}") from None
    if value <= ZERO:
        raise InvalidInputError(f"{name} must be positive, got {value}")
    return value


def calculate_tiered_price(pricing: TieredPricing, quantity: object) -> CalculationResult:
    """Calculate a graduated price across quantity tiers.

    Args:
        pricing: The tier structure.
        quantity: Units to price.

    Returns:
        The result with one breakdown line per contributing tier.

    Raises:
        InvalidInputError: If quantity is zero or negative.
    """
    requested = _validate_quantity(quantity)
    ordered = pricing.sorted_tiers
    remaining = requested
    total = ZERO
    details: list[LineItem] = []

    for index, tier in enumerate(ordered):
        if remaining <= ZERO or (index == 0 and requested <= tier.min_quantity - ONE):
            break

        is_last = index == len(ordered) - 1
        if is_last or tier.max_quantity is None:
            units = remaining
        else:
            units = min(remaining, tier.max_quantity - tier.min_quantity + ONE)

        subtotal = units * tier.price_per_unit
        total += subtotal
        details.append(
            LineItem(
                description=f"Tier {tier.label} @ {tier.price_per_unit} each",
                quantity=units,
                unit_price=tier.price_per_unit,
                subtotal=subtotal,
            )
        )
        remaining -= units

    return CalculationResult(
        total_price=round_money(total),
        breakdown=Breakdown(model=PricingModel.TIERED, details=details),
        applied_model=PricingModel.TIERED,
        metadata={
            "total_quantity": requested,
            "tiers_used": len(details),
            "effective_average_price": round_money(total / requested),
            "unallocated_quantity": remaining,
        },
    )


def calculate_seat_based_price(pricing: SeatBasedPricing, seats: object) -> CalculationResult:
    """Calculate a per-seat price with a minimum seat count and volume discounts.

    Among the volume discounts whose ``min_seats`` is met by the effective
    seat count, the one with the highest ``discount_percent`` is applied.

    Args:
        pricing: Seat price, optional minimum and volume discounts.
        seats: Requested seat count.

    Returns:
        The result with a seat line and, when discounted, a discount line.

    Raises:
        InvalidInputError: If seats is zero or negative.
    """
    requested = _validate_quantity(seats, name="seats")
    minimum = Decimal(pricing.minimum_seats or 1)
    effective = max(requested, minimum)
    base_price = effective * pricing.price_per_seat

    applicable = [d for d in pricing.volume_discounts if d.min_seats <= effective]
    discount_percent = ZERO
    if applicable:
        discount_percent = max(applicable, key=lambda d: d.discount_percent).discount_percent
    discount_amount = base_price * discount_percent / HUNDRED

    details = [
        LineItem(
            description=f"{effective} seats @ {pricing.price_per_seat} per seat",
            quantity=effective,
            unit_price=pricing.price_per_seat,
            subtotal=base_price,
        )
    ]
    if discount_amount > ZERO:
        details.append(
            LineItem(
                description=f"Volume discount ({discount_percent}% off)",
                quantity=ONE,
                unit_price=-discount_amount,
                subtotal=-discount_amount,
            )
        )

    return CalculationResult(
        total_price=round_money(base_price - discount_amount),
        breakdown=Breakdown(
            model=PricingModel.SEAT_BASED,
            details=details,
            base_amount=base_price,
            discount_amount=discount_amount,
        ),
        applied_model=PricingModel.SEAT_BASED,
        metadata={
            "requested_seats": requested,
            "effective_seats": effective,
            "discount_percent": discount_percent,
            "minimum_seats_applied": requested < minimum,
        },
    )


def calculate_flat_rate_price(pricing: FlatRatePricing, quantity: object = 1) -> CalculationResult:
    """Calculate a flat price multiplied by quantity.

    Quantity defaults to 1 for display-only uses such as a one-time fee.

    Raises:
        InvalidInputError: If quantity is zero or negative.
    """
    units = _validate_quantity(quantity)
    period = pricing.billing_period or BillingPeriod.ONE_TIME
    total = pricing.price * units

    return CalculationResult(
        total_price=round_money(total),
        breakdown=Breakdown(
            model=PricingModel.FLAT_RATE,
            details=[
                LineItem(
                    description=f"{units} x {pricing.price} ({period})",
                    quantity=units,
                    unit_price=pricing.price,
                    subtotal=total,
                )
            ],
        ),
        applied_model=PricingModel.FLAT_RATE,
        metadata={"billing_period": period, "unit_price": pricing.price},
    )


def calculate_cost_plus_price(
    pricing: CostPlusPricing,
    quantity: object,
    base_cost: object | None = None,
) -> CalculationResult:
    """Calculate a marked-up price from a base cost.

    ``unit_price = base_cost * (1 + markup_percent / 100)``; the total is the
    unit price times quantity and equals ``base_amount + markup_amount``.

    Args:
        pricing: Stored base cost and markup.
        quantity: Units to price.
        base_cost: Optional override of the stored base cost. The stored
            parameters are left untouched.

    Raises:
        InvalidInputError: If quantity is not positive or the override is
            negative.
    """
    units = _validate_quantity(quantity)
    effective_cost = pricing.base_cost
    if base_cost is not None:
        try:
            effective_cost = to_decimal(base_cost)
        except ValueError:
            raise InvalidInputError(f"base_cost must be a number, got {base_cost!r}") from None
        if effective_cost < ZERO:
            raise InvalidInputError(f"base_cost must not be negative, got {effective_cost}")

    markup_per_unit = effective_cost * pricing.markup_percent / HUNDRED
    unit_price = effective_cost + markup_per_unit
    base_amount = effective_cost * units
    markup_amount = markup_per_unit * units

    return CalculationResult(
        total_price=round_money(base_amount + markup_amount),
        breakdown=Breakdown(
            model=PricingModel.COST_PLUS,
            base_amount=base_amount,
            markup_amount=markup_amount,
            details=[
                LineItem(
                    description=f"Base cost: {units} x {effective_cost}",
                    quantity=units,
                    unit_price=effective_cost,
                    subtotal=base_amount,
                ),
                LineItem(
                    description=f"Markup ({pricing.markup_percent}%)",
                    quantity=units,
                    unit_price=markup_per_unit,
                    subtotal=markup_amount,
                ),
            ],
        ),
        applied_model=PricingModel.COST_PLUS,
        metadata={
            "base_cost": effective_cost,
            "markup_percent": pricing.markup_percent,
            "unit_price": unit_price,
        },
    )


def calculate_subscription_price(
    pricing: SubscriptionPricing,
    quantity: object,
    billing_period: BillingPeriod | str | None = None,
) -> CalculationResult:
    """Calculate a subscription price plus an optional one-off setup fee.

    The yearly price is charged when the yearly period is requested and a
    yearly price exists; otherwise the monthly price is charged.

    Raises:
        InvalidInputError: If quantity is not positive or the billing period
            is not recognized.
    """
    units = _validate_quantity(quantity)
    try:
        requested = BillingPeriod(billing_period) if billing_period else BillingPeriod.MONTHLY
    except ValueError:
        raise InvalidInputError(f"Unsupported billing period: {billing_period}") from None

    if requested == BillingPeriod.YEARLY and pricing.yearly_price is not None:
        unit_price = pricing.yearly_price
        period = BillingPeriod.YEARLY
        monthly_equivalent = round_money(pricing.yearly_price / MONTHS_PER_YEAR)
    else:
        unit_price = pricing.monthly_price
        period = BillingPeriod.MONTHLY
        monthly_equivalent = pricing.monthly_price

    subscription_total = unit_price * units
    setup_fee = pricing.setup_fee or ZERO
    details = [
        LineItem(
            description=f"{units} x {unit_price} ({period})",
            quantity=units,
            unit_price=unit_price,
            subtotal=subscription_total,
        )
    ]
    if setup_fee > ZERO:
        details.append(
            LineItem(description="Setup fee", quantity=ONE, unit_price=setup_fee, subtotal=setup_fee)
        )

    return CalculationResult(
        total_price=round_money(subscription_total + setup_fee),
        breakdown=Breakdown(
            model=PricingModel.SUBSCRIPTION,
            details=details,
            base_amount=subscription_total,
            setup_fee=setup_fee,
        ),
        applied_model=PricingModel.SUBSCRIPTION,
        metadata={
            "billing_period": period,
            "features": list(pricing.features),
            "monthly_equivalent": monthly_equivalent,
        },
    )


def calculate_price(
    pricing_model: PricingModel | str,
    pricing_data: Any,
    calculation_input: CalculationInput,
) -> CalculationResult:
    """Route a calculation to the calculator for ``pricing_model``.

    Args:
        pricing_model: The rate card's pricing model tag.
        pricing_data: Parsed parameters, or the raw JSON-shaped mapping.
        calculation_input: Quantity and per-call overrides.

    Returns:
        The calculation result.

    Raises:
        InvalidInputError: If the model is unsupported, the data is invalid
            for it, or the calculator rejects the input.
    """
    model = resolve_pricing_model(pricing_model)
    if isinstance(pricing_data, dict):
        pricing_data = parse_pricing_data(model, pricing_data)
    if pricing_data.model != model.value:
        raise InvalidInputError(
            f"{pricing_data.model} parameters cannot be priced as {model}"
        )

    quantity = calculation_input.quantity
    if model == PricingModel.TIERED:
        return calculate_tiered_price(pricing_data, quantity)
    if model == PricingModel.SEAT_BASED:
        return calculate_seat_based_price(pricing_data, quantity)
    if model == PricingModel.FLAT_RATE:
        return calculate_flat_rate_price(pricing_data, quantity)
    if model == PricingModel.COST_PLUS:
        return calculate_cost_plus_price(pricing_data, quantity, calculation_input.base_cost)
    if model == PricingModel.SUBSCRIPTION:
        return calculate_subscription_price(
            pricing_data, quantity, calculation_input.billing_period
        )
    raise InvalidInputError(f"Unsupported pricing model: {pricing_model}")
