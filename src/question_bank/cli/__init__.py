"""Command-line interface."""

from question_bank.cli.main import app

__all__ = ["app"]
