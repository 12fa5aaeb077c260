"""
shed - pin, build and cache command-line tools per project.

Tools are identified by Go import paths, pinned in a ``shed.lock`` file and
built into a shared, content-addressed cache.
"""

__version__ = "0.1.0"
