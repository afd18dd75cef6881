"""Domain enumerations for rate cards and calculation worksheets."""

from enum import StrEnum


class PricingModel(StrEnum):
    """Pricing models a rate card can be expressed in."""

    TIERED = "tiered"
    SEAT_BASED = "seat-based"
    FLAT_RATE = "flat-rate"
    COST_PLUS = "cost-plus"
    SUBSCRIPTION = "subscription"


class BillingPeriod(StrEnum):
    """Billing periods understood by flat-rate and subscription pricing."""

    ONE_TIME = "one-time"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ColumnType(StrEnum):
    """Worksheet column types."""

    TEXT = "text"
    NUMBER = "number"
    PERCENTAGE = "percentage"
    CURRENCY = "currency"
    READONLY = "readonly"


# Column types whose cells hold numbers
NUMERIC_COLUMN_TYPES: frozenset[ColumnType] = frozenset(
    {ColumnType.NUMBER, ColumnType.PERCENTAGE, ColumnType.CURRENCY}
)


class ValidationRule(StrEnum):
    """Closed set of per-cell validators interpreted by the worksheet engine.

    ``required`` is not a member: it is carried by ``ColumnDefinition.required``
    and checked before any rule runs.
    """

    NON_NEGATIVE = "non_negative"
    POSITIVE = "positive"
    PERCENTAGE_RANGE = "percentage_range"
    TIER_RANGE = "tier_range"


class ComputedFormula(StrEnum):
    """Built-in formulas backing readonly worksheet columns."""

    TIER_TOTAL = "tier_total"
    SEAT_SUBTOTAL = "seat_subtotal"
    FINAL_PRICE = "final_price"


class HistoryAction(StrEnum):
    """Kinds of committed worksheet mutations recorded in undo history."""

    EDIT = "edit"
    ADD = "add"
    DELETE = "delete"
    REORDER = "reorder"
