"""
Command-line interface for shed.
"""

from .parser import CLI, main

__all__ = ["CLI", "main"]
