"""Logging utilities for the tire friction estimator."""

from tire_friction.logging.config import JsonFormatter, setup_logging

__all__ = ["JsonFormatter", "setup_logging"]
