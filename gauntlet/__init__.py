"""Drill Gauntlet: timed, lives-based practice runs over drill items."""

__version__ = "0.1.0"
