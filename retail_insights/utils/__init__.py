"""Utility functions."""

from .helpers import setup_logging, get_timestamp, format_metrics, safe_divide, slugify

__all__ = ["setup_logging", "get_timestamp", "format_metrics", "safe_divide", "slugify"]
