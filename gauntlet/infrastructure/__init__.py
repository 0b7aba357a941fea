"""Infrastructure adapters: storage backends and messaging."""
