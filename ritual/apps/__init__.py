"""Application entrypoints for Ritual."""
