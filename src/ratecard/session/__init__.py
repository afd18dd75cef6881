"""Calculator session for ad-hoc rate card quotes."""

from ratecard.session.calculator import (
    CalculationHistoryEntry,
    CalculatorSession,
    RateCardSource,
)

__all__ = [
    "CalculationHistoryEntry",
    "CalculatorSession",
    "RateCardSource",
]
