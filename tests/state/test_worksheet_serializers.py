"""Tests for JSON serialization of worksheets and calculation results."""

import json
from datetime import date
from decimal import Decimal

from ratecard.domain.types import PricingModel
from ratecard.pricing.calculators import calculate_tiered_price
from ratecard.state.serializers import (
    deserialize_result,
    deserialize_worksheet,
    serialize_result,
    serialize_worksheet,
)
from ratecard.worksheet.engine import Worksheet


class TestWorksheetSerialization:
    """Tests for saving and restoring a worksheet."""

    def _sheet(self) -> Worksheet:
        sheet = Worksheet(PricingModel.COST_PLUS)
        row_id = sheet.rows[0].id
        sheet.edit_cell(row_id, "item", "Widget")
        sheet.edit_cell(row_id, "baseCost", "80")
        sheet.edit_cell(row_id, "markup", "=10*2.5")
        sheet.set_validity(date(2026, 1, 1), date(2026, 6, 30))
        return sheet

    def test_decimals_written_as_strings(self):
        payload = json.loads(serialize_worksheet(self._sheet()))

        assert payload["total_price"] == "100.00"
        assert payload["pricing_model"] == "cost-plus"
        assert payload["valid_from"] == "2026-01-01"
        assert payload["rows"][0]["cells"]["markup"]["formula"] == "=10*2.5"

    def test_round_trip_restores_numbers(self):
        sheet = self._sheet()
        restored = deserialize_worksheet(serialize_worksheet(sheet))

        assert restored.total_price == Decimal("100.00")
        assert restored.rows[0].value("baseCost") == Decimal("80")
        assert isinstance(restored.rows[0].value("baseCost"), Decimal)
        assert restored.rows[0].value("item") == "Widget"
        assert restored.valid_until == date(2026, 6, 30)
        assert restored.is_complete is True

    def test_round_trip_keeps_undo_history(self):
        restored = deserialize_worksheet(serialize_worksheet(self._sheet()))

        assert restored.undo() is True
        assert restored.rows[0].value("markup") == Decimal("0")
        assert restored.rows[0].cell("markup").formula is None


class TestResultSerialization:
    """Tests for saving and restoring a calculation result."""

    def test_camel_case_and_string_decimals(self, tiered_pricing):
        result = calculate_tiered_price(tiered_pricing, 15)
        payload = json.loads(serialize_result(result))

        assert payload["totalPrice"] == "65.00"
        assert payload["appliedModel"] == "tiered"
        assert payload["breakdown"]["details"][0]["unitPrice"] == "5"

    def test_round_trip(self, tiered_pricing):
        result = calculate_tiered_price(tiered_pricing, 15)
        restored = deserialize_result(serialize_result(result))

        assert restored.total_price == Decimal("65.00")
        assert restored.breakdown.details == result.breakdown.details
        assert restored.metadata["tiers_used"] == 2
