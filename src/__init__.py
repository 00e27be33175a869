"""Showcase - curated display ordering for portfolio content."""

__version__ = "0.1.0"
