"""Persistence of gauntlet statistics."""
