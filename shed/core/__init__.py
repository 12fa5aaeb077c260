"""
Core functionality for shed.

This package contains the foundational modules that other components depend on.
"""

from .exceptions import (
    ShedError,
    ConfigError,
    CanceledError,
    LockfileError,
    NotFoundError,
    AmbiguousNameError,
    DuplicateShortNameError,
    InvalidToolError,
    FormatError,
    CacheError,
    ResolutionError,
    BuildError,
    ToolNotInstalledError,
    OperationError,
    ErrorList,
)

from .tool import Tool, short_name, parse_spec, is_valid_import_path

from .platform import PlatformInfo, detect_platform

__all__ = [
    # Exceptions
    "ShedError",
    "ConfigError",
    "CanceledError",
    "LockfileError",
    "NotFoundError",
    "AmbiguousNameError",
    "DuplicateShortNameError",
    "InvalidToolError",
    "FormatError",
    "CacheError",
    "ResolutionError",
    "BuildError",
    "ToolNotInstalledError",
    "OperationError",
    "ErrorList",
    # Tools
    "Tool",
    "short_name",
    "parse_spec",
    "is_valid_import_path",
    # Platform
    "PlatformInfo",
    "detect_platform",
]
