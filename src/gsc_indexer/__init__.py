"""Bulk Google Search Console indexing status checks and indexing requests."""

__version__ = "0.1.0"

__all__ = ["__version__"]
