"""Trackboard — project tracking, filtering, timelines and import/export."""

__version__ = "0.1.0"
