"""In-process domain event delivery."""
