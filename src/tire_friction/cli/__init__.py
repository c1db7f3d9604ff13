"""Command line interface for the tire friction estimator."""

from tire_friction.cli.app import build_parser, main, run_cli
from tire_friction.cli.errors import CliError

__all__ = ["CliError", "build_parser", "main", "run_cli"]
