"""Shared helpers used across showcase packages."""
