"""Ritual: routine activity resolution and completion tracking."""

__version__ = "0.1.0"
