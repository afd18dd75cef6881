"""Persistence helpers: JSON round-trips for worksheets and results."""

from ratecard.state.serializers import (
    deserialize_result,
    deserialize_worksheet,
    serialize_result,
    serialize_worksheet,
)

__all__ = [
    "deserialize_result",
    "deserialize_worksheet",
    "serialize_result",
    "serialize_worksheet",
]
