"""Pydantic v2 models for rate cards, pricing parameters and calculation results.

Pricing parameters are a discriminated union keyed by the ``model`` tag, one
frozen record type per pricing model. Field names are snake_case in Python and
camelCase on the wire (``pricePerUnit``, ``minimumSeats``) to match the
persisted rate card JSON.
"""

from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from ratecard.domain.errors import InvalidInputError
from ratecard.domain.numbers import ONE, to_decimal
from ratecard.domain.types import BillingPeriod, PricingModel


class _WireModel(BaseModel):
    """Frozen base model with camelCase aliases."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


def _coerce_decimal(v: object) -> object:
    """Convert numeric inputs to Decimal, leaving ``None`` for optional fields."""
    if v is None:
        return v
    return to_decimal(v)


class Tier(_WireModel):
    """A quantity sub-range with its own per-unit price.

    ``max_quantity`` of ``None`` means the tier is unbounded.
    """

    min_quantity: Decimal = Field(alias="min", ge=0)
    max_quantity: Decimal | None = Field(default=None, alias="max")
    price_per_unit: Decimal = Field(ge=0)

    @field_validator("min_quantity", "max_quantity", "price_per_unit", mode="before")
    @classmethod
    def coerce_numbers(cls, v: object) -> object:
        """Accept ints, floats (via str) and numeric strings; reject booleans."""
        return _coerce_decimal(v)

    @model_validator(mode="after")
    def max_must_not_precede_min(self) -> "Tier":
        """Ensure a bounded tier does not end before it starts."""
        if self.max_quantity is not None and self.max_quantity < self.min_quantity:
            raise ValueError(
                f"tier max ({self.max_quantity}) must not be below min ({self.min_quantity})"
            )
        return self

    @property
    def label(self) -> str:
        """Human-readable range such as ``1-10`` or ``11+``."""
        if self.max_quantity is None:
            return f"{self.min_quantity}+"
        return f"{self.min_quantity}-{self.max_quantity}"


class TieredPricing(_WireModel):
    """Tiered pricing parameters.

    Tiers may be supplied in any order; once sorted by ``min`` they must not
    overlap and only the last one may be unbounded.
    """

    model: Literal["tiered"] = "tiered"
    tiers: list[Tier] = Field(min_length=1)

    @model_validator(mode="after")
    def tiers_must_not_overlap(self) -> "TieredPricing":
        """Ensure sorted tiers are disjoint."""
        ordered = self.sorted_tiers
        for previous, current in zip(ordered, ordered[1:]):
            if previous.max_quantity is None:
                raise ValueError(
                    f"unbounded tier {previous.label} must be the last tier"
                )
            if current.min_quantity <= previous.max_quantity:
                raise ValueError(
                    f"tier {current.label} overlaps tier {previous.label}"
                )
        return self

    @property
    def sorted_tiers(self) -> list[Tier]:
        """Tiers in ascending order of their minimum quantity."""
        return sorted(self.tiers, key=lambda tier: tier.min_quantity)


class VolumeDiscount(_WireModel):
    """Percentage discount unlocked at a seat count."""

    min_seats: int = Field(ge=0)
    discount_percent: Decimal = Field(ge=0, le=100)

    @field_validator("discount_percent", mode="before")
    @classmethod
    def coerce_percent(cls, v: object) -> object:
        """Accept ints, floats (via str) and numeric strings; reject booleans."""
        return _coerce_decimal(v)


class SeatBasedPricing(_WireModel):
    """Seat-based pricing parameters with optional volume discounts."""

    model: Literal["seat-based"] = "seat-based"
    price_per_seat: Decimal = Field(ge=0)
    minimum_seats: int | None = Field(default=None, ge=0)
    volume_discounts: list[VolumeDiscount] = Field(default_factory=list)

    @field_validator("price_per_seat", mode="before")
    @classmethod
    def coerce_price(cls, v: object) -> object:
        """Accept ints, floats (via str) and numeric strings; reject booleans."""
        return _coerce_decimal(v)


class FlatRatePricing(_WireModel):
    """Flat-rate pricing parameters."""

    model: Literal["flat-rate"] = "flat-rate"
    price: Decimal = Field(ge=0)
    billing_period: BillingPeriod | None = None
    description: str | None = None

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: object) -> object:
        """Accept ints, floats (via str) and numeric strings; reject booleans."""
        return _coerce_decimal(v)


class CostPlusPricing(_WireModel):
    """Cost-plus pricing parameters."""

    model: Literal["cost-plus"] = "cost-plus"
    base_cost: Decimal = Field(ge=0)
    markup_percent: Decimal = Field(ge=0)

    @field_validator("base_cost", "markup_percent", mode="before")
    @classmethod
    def coerce_numbers(cls, v: object) -> object:
        """Accept ints, floats (via str) and numeric strings; reject booleans."""
        return _coerce_decimal(v)


class SubscriptionPricing(_WireModel):
    """Subscription pricing parameters."""

    model: Literal["subscription"] = "subscription"
    monthly_price: Decimal = Field(ge=0)
    yearly_price: Decimal | None = Field(default=None, ge=0)
    setup_fee: Decimal | None = Field(default=None, ge=0)
    features: list[str] = Field(default_factory=list)

    @field_validator("monthly_price", "yearly_price", "setup_fee", mode="before")
    @classmethod
    def coerce_numbers(cls, v: object) -> object:
        """Accept ints, floats (via str) and numeric strings; reject booleans."""
        return _coerce_decimal(v)


PricingParameters = Annotated[
    TieredPricing | SeatBasedPricing | FlatRatePricing | CostPlusPricing | SubscriptionPricing,
    Field(discriminator="model"),
]

PARAMETER_MODELS: dict[PricingModel, type[_WireModel]] = {
    PricingModel.TIERED: TieredPricing,
    PricingModel.SEAT_BASED: SeatBasedPricing,
    PricingModel.FLAT_RATE: FlatRatePricing,
    PricingModel.COST_PLUS: CostPlusPricing,
    PricingModel.SUBSCRIPTION: SubscriptionPricing,
}


def resolve_pricing_model(tag: object) -> PricingModel:
    """Turn a raw model tag into a ``PricingModel``.

    Raises:
        InvalidInputError: If the tag names no supported pricing model.
    """
    try:
        return PricingModel(tag)
    except ValueError:
        raise InvalidInputError(f"Unsupported pricing model: {tag}") from None


def parse_pricing_data(pricing_model: PricingModel | str, data: object) -> Any:
    """Parse raw (JSON-shaped) pricing data into the model-specific record.

    Args:
        pricing_model: The pricing model tag the data belongs to.
        data: The untyped parameter mapping, camelCase or snake_case keys.

    Returns:
        The parsed parameter record for ``pricing_model``.

    Raises:
        InvalidInputError: If the tag is unsupported or the data does not
            satisfy the model's structure and ranges.
    """
    model = resolve_pricing_model(pricing_model)
    if not isinstance(data, dict):
        raise InvalidInputError(f"Pricing data for {model} must be an object")
    try:
        return PARAMETER_MODELS[model].model_validate({**data, "model": model.value})
    except ValidationError as exc:
        raise InvalidInputError(
            f"Invalid {model} pricing data: {exc.error_count()} error(s)"
        ) from exc


class RateCard(_WireModel):
    """A named pricing definition: one pricing model plus its parameters."""

    id: str
    name: str
    pricing_model: PricingModel
    data: PricingParameters
    currency: str = "USD"
    is_active: bool = True
    description: str | None = None

    @model_validator(mode="before")
    @classmethod
    def tag_pricing_data(cls, values: Any) -> Any:
        """Copy the card's pricing model tag into its data for union dispatch."""
        if not isinstance(values, dict):
            return values
        model = values.get("pricingModel", values.get("pricing_model"))
        data = values.get("data")
        if isinstance(data, dict) and "model" not in data and model is not None:
            return {**values, "data": {**data, "model": str(model)}}
        return values

    @model_validator(mode="after")
    def data_must_match_model(self) -> "RateCard":
        """Ensure the parameter record belongs to the declared pricing model."""
        if self.data.model != self.pricing_model.value:
            raise ValueError(
                f"data is {self.data.model} pricing but card declares {self.pricing_model}"
            )
        return self

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        """Ensure the card name is not empty or whitespace-only."""
        if not v.strip():
            raise ValueError("name must not be empty")
        return v


class CalculationInput(BaseModel):
    """Inputs for one calculation against a rate card.

    Attributes:
        quantity: Units (or seats) to price.
        base_cost: Optional cost-plus base cost override.
        billing_period: Optional subscription billing period.
        parameters: Free-form extra parameters, carried through untouched.
    """

    model_config = ConfigDict(frozen=True)

    quantity: Decimal = ONE
    base_cost: Decimal | None = None
    billing_period: BillingPeriod | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)

    @field_validator("quantity", "base_cost", mode="before")
    @classmethod
    def coerce_numbers(cls, v: object) -> object:
        """Accept ints, floats (via str) and numeric strings; reject booleans."""
        return _coerce_decimal(v)


class LineItem(_WireModel):
    """One itemized line of a calculation breakdown."""

    description: str
    quantity: Decimal
    unit_price: Decimal
    subtotal: Decimal


class Breakdown(_WireModel):
    """Model-tagged itemization of a calculated total.

    Amounts are unrounded; only ``CalculationResult.total_price`` is rounded.
    """

    model: PricingModel
    details: list[LineItem] = Field(default_factory=list)
    base_amount: Decimal | None = None
    discount_amount: Decimal | None = None
    markup_amount: Decimal | None = None
    setup_fee: Decimal | None = None


class CalculationResult(_WireModel):
    """Outcome of a pricing calculation.

    Attributes:
        total_price: Final total, quantized to cents.
        breakdown: Itemized, model-tagged breakdown.
        applied_model: The pricing model that produced the total.
        metadata: Model-specific extras (tiers used, discount applied, ...).
    """

    total_price: Decimal
    breakdown: Breakdown
    applied_model: PricingModel
    metadata: dict[str, Any] = Field(default_factory=dict)

