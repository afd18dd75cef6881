"""Logging setup for the rate card engine."""

from ratecard.observability.log_config import configure_logging

__all__ = ["configure_logging"]
