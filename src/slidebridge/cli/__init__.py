"""CLI module for slidebridge.

Provides the command-line interface for inspecting slides and
extracting regions and associated images.
"""

from __future__ import annotations

from slidebridge.cli.main import app

__all__ = ["app"]
