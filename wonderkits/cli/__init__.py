"""CLI module for wonderkits."""

from wonderkits.cli.commands import app

__all__ = ["app"]
