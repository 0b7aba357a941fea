"""Application services orchestrating gauntlet runs."""
