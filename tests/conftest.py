"""
Pytest configuration and shared fixtures for shed tests.
"""

# Import test fixtures to make them available to all tests
# ruff: noqa: F401
from tests.fixtures.tools import (
    linux_platform,
    mock_builder,
    cache_root,
    cache,
    lockfile_path,
    isolated_env,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
