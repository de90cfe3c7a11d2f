"""Upgrade Status - deprecation scan orchestration and reporting."""

__version__ = "1.0.0"
