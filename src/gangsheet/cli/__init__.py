"""CLI module for gangsheet.

Provides the command-line interface for listing sheet sizes, quoting
prices and packing designs.
"""

from __future__ import annotations

from gangsheet.cli.main import app

__all__ = ["app"]
