"""Command-line entry points (`escrow-vm`)."""

from .escrow import app, get_app

__all__ = ["app", "get_app"]
