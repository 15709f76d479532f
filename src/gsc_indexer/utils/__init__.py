"""Utilities for shared application concerns."""

from gsc_indexer import __version__
from gsc_indexer.utils.logging import setup_logging

__all__ = ["__version__", "setup_logging"]
