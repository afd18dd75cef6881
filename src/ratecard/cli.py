"""Command-line quoting against a rate card file.

Reads a rate card JSON document (``id``, ``name``, ``pricingModel``,
``data``, ...), validates it and prices a quantity. Output formats: table
(default) or JSON.

Usage::

    ratecard-quote --card cards/api-tiers.json --quantity 15
    ratecard-quote --card cards/consulting.json --base-cost 1200 --format json
    ratecard-quote --card cards/plan.json --validate-only
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from ratecard.config import get_settings
from ratecard.domain.errors import InvalidInputError
from ratecard.domain.models import CalculationInput, CalculationResult, RateCard
from ratecard.domain.types import BillingPeriod
from ratecard.observability import configure_logging
from ratecard.pricing.calculators import calculate_price
from ratecard.state.serializers import serialize_result

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for rate card quotes.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(prog="ratecard-quote", description="Price a quantity against a rate card")

    parser.add_argument(
        "--card",
        type=str,
        required=True,
        help="Path to a rate card JSON file",
    )
    parser.add_argument(
        "--quantity",
        type=str,
        default="1",
        help="Units or seats to price (default: 1)",
    )
    parser.add_argument(
        "--base-cost",
        type=str,
        default=None,
        help="Override the cost-plus base cost",
    )
    parser.add_argument(
        "--billing-period",
        type=str,
        choices=[period.value for period in BillingPeriod],
        default=None,
        help="Billing period for subscription cards",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Only check that the rate card is valid",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["table", "json"],
        default="table",
        dest="output_format",
        help="Output format (default: table)",
    )

    return parser


def load_rate_card(path: Path) -> RateCard:
    """Read and validate a rate card JSON file.

    Raises:
        InvalidInputError: If the file cannot be read or is not a valid rate card.
    """
    try:
        raw: Any = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise InvalidInputError(f"Cannot read rate card {path}: {exc}") from None
    try:
        return RateCard.model_validate(raw)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'card'}: {error['msg']}" for error in exc.errors()
        )
        raise InvalidInputError(f"Invalid rate card {path}: {problems}") from None


def format_table(card: RateCard, result: CalculationResult) -> str:
    """Format a calculation result as a human-readable table.

    Columns: Description, Quantity, Unit Price, Subtotal, followed by the
    discount, markup, setup fee (when present) and the total.

    Args:
        card: The rate card that was priced.
        result: The calculation result.

    Returns:
        Formatted table string with header row.
    """
    headers = ["Description", "Quantity", "Unit Price", "Subtotal"]
    widths = [30, 10, 12, 12]

    def truncate(value: object, width: int) -> str:
        s = str(value if value is not None else "")
        if len(s) > width:
            return s[: width - 3] + "..."
        return s

    lines: list[str] = [f"{card.name} ({card.pricing_model}, {card.currency})", ""]

    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths, strict=True))
    lines.append(header_line)
    lines.append("-" * len(header_line))

    for item in result.breakdown.details:
        cells = [
            truncate(item.description, widths[0]),
            truncate(item.quantity, widths[1]),
            truncate(item.unit_price, widths[2]),
            truncate(item.subtotal, widths[3]),
        ]
        lines.append("  ".join(c.ljust(w) for c, w in zip(cells, widths, strict=True)))

    lines.append("-" * len(header_line))
    breakdown = result.breakdown
    for label, amount in (
        ("Discount", breakdown.discount_amount),
        ("Markup", breakdown.markup_amount),
        ("Setup fee", breakdown.setup_fee),
    ):
        if amount:
            lines.append(f"{label}: {amount}")
    lines.append(f"Total: {result.total_price} {card.currency}")

    return "\n".join(lines)


def format_json(card: RateCard, result: CalculationResult) -> str:
    """Format a calculation result as a JSON document.

    Args:
        card: The rate card that was priced.
        result: The calculation result.

    Returns:
        JSON string with the card id, currency and the camelCase result.
    """
    payload = {
        "rateCardId": card.id,
        "currency": card.currency,
        "result": json.loads(serialize_result(result)),
    }
    return json.dumps(payload, indent=2)


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, price the rate card, and print the result.

    Returns:
        0 on success, 1 if the card is invalid or the calculation is rejected.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(production=settings.production, log_level=settings.log_level)

    try:
        card = load_rate_card(Path(args.card))
        if args.validate_only:
            print(f"Rate card '{card.name}' is valid ({card.pricing_model})")
            return 0

        calculation_input = CalculationInput(
            quantity=args.quantity,
            base_cost=args.base_cost,
            billing_period=args.billing_period,
        )
        result = calculate_price(card.pricing_model, card.data, calculation_input)
    except ValidationError as exc:
        print(f"error: invalid number: {exc.errors()[0]['input']!r}", file=sys.stderr)
        return 1
    except InvalidInputError as exc:
        logger.warning("quote_failed", card=args.card, error=str(exc))
        print(f"error: {exc}", file=sys.stderr)
        return 1

    output = format_json(card, result) if args.output_format == "json" else format_table(card, result)
    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
