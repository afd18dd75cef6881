"""Serialization helpers for worksheets and calculation results.

Decimal values are written as strings so no precision is lost, and dates as
ISO-8601 strings.  Numeric worksheet cells therefore come back as strings;
``Worksheet.from_document`` reads them as numbers again by column type.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from ratecard.domain.models import CalculationResult
from ratecard.worksheet.engine import Worksheet
from ratecard.worksheet.models import CalculationData


class _DecimalEncoder(json.JSONEncoder):
    """JSON encoder that converts Decimal values to strings and dates to ISO-8601."""

    def default(self, o: object) -> Any:
        if isinstance(o, Decimal):
            return str(o)
        if isinstance(o, (date, datetime)):
            return o.isoformat()
        return super().default(o)


def serialize_worksheet(worksheet: Worksheet) -> str:
    """JSON-encode a worksheet, including its undo history.

    Args:
        worksheet: The worksheet to save.

    Returns:
        A JSON string of the worksheet's ``CalculationData`` document.
    """
    return json.dumps(worksheet.to_document().model_dump(), cls=_DecimalEncoder)


def deserialize_worksheet(json_str: str, max_history: int | None = None) -> Worksheet:
    """Rebuild a worksheet from a string produced by ``serialize_worksheet``.

    Args:
        json_str: The saved worksheet.
        max_history: Optional undo history bound for the restored worksheet.

    Returns:
        The restored ``Worksheet``, recalculated.
    """
    document = CalculationData.model_validate(json.loads(json_str))
    return Worksheet.from_document(document, max_history=max_history)


def serialize_result(result: CalculationResult) -> str:
    """JSON-encode a calculation result with camelCase keys."""
    return json.dumps(result.model_dump(by_alias=True), cls=_DecimalEncoder)


def deserialize_result(json_str: str) -> CalculationResult:
    """Decode a calculation result produced by ``serialize_result``.

    Note: metadata values that were Decimal come back as strings.
    """
    return CalculationResult.model_validate(json.loads(json_str))
