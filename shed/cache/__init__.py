"""
Tool cache and build backends.

This package contains the content-addressed executable cache and the
builders it drives.
"""

from .store import Cache
from .go import GoBuilder
from .mock import MockBuilder

__all__ = [
    "Cache",
    "GoBuilder",
    "MockBuilder",
]
