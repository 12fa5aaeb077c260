"""Tool table, cache and lockfile fixtures for testing.

The tool table mirrors a handful of real Go tools with a mix of tagged
releases and pseudo-versions so that version resolution, short names and
major version suffixes are all exercised.
"""

from pathlib import Path
from typing import Iterable

import pytest

from shed.cache.mock import MockBuilder
from shed.cache.store import Cache
from shed.config.lockfile import Lockfile
from shed.core.platform import PlatformInfo
from shed.core.tool import Tool

GO_FISH = "github.com/cszatmary/go-fish"
GOLANGCI_LINT = "github.com/golangci/golangci-lint/cmd/golangci-lint"
STRINGER = "golang.org/x/tools/cmd/stringer"
EJSON = "github.com/Shopify/ejson/cmd/ejson"
STRINGER_V2 = "example.org/z/random/stringer/v2/cmd/stringer"

GO_FISH_COMMIT = "22d10c9b658df297b17b33c836a60fb943ef5a5f"
GO_FISH_PSEUDO = "v0.0.0-20201203230243-22d10c9b658d"

AVAILABLE_TOOLS = {
    GO_FISH: {
        "v0.1.0": "v0.1.0",
        GO_FISH_COMMIT: GO_FISH_PSEUDO,
    },
    GOLANGCI_LINT: {
        "v1.33.0": "v1.33.0",
        "v1.28.3": "v1.28.3",
    },
    STRINGER: {
        "v0.0.0-20201211185031-d93e913c1a58": "v0.0.0-20201211185031-d93e913c1a58",
    },
    EJSON: {
        "v1.2.2": "v1.2.2",
        "v1.1.0": "v1.1.0",
    },
    STRINGER_V2: {
        "v2.1.0": "v2.1.0",
    },
}


def write_lockfile(path: Path, tools: Iterable[Tool]) -> Path:
    """Write a lockfile containing ``tools`` to ``path``."""
    Lockfile(tools).save(path)
    return path


def read_lockfile(path: Path) -> Lockfile:
    """Parse the lockfile at ``path``."""
    assert path.is_file(), f"expected lockfile at {path}"
    return Lockfile.parse(path.read_text())


@pytest.fixture
def linux_platform() -> PlatformInfo:
    """Fixed POSIX platform so cache layouts are predictable."""
    return PlatformInfo("linux", "amd64")


@pytest.fixture
def mock_builder(linux_platform) -> MockBuilder:
    """MockBuilder serving the standard tool table."""
    return MockBuilder(AVAILABLE_TOOLS, platform=linux_platform)


@pytest.fixture
def cache_root(tmp_path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def cache(cache_root, mock_builder, linux_platform) -> Cache:
    """Cache in a temporary directory backed by the mock builder."""
    return Cache(cache_root, builder=mock_builder, platform=linux_platform)


@pytest.fixture
def lockfile_path(tmp_path) -> Path:
    """Lockfile location inside a temporary project directory."""
    project = tmp_path / "project"
    project.mkdir()
    return project / "shed.lock"


@pytest.fixture
def isolated_env(tmp_path, monkeypatch) -> Path:
    """Point user config and cache directories at a temporary home."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("XDG_CACHE_HOME", str(fake_home / ".cache"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(fake_home / ".config"))
    for var in ("SHED_CONFIG", "SHED_CACHE_DIR", "SHED_MAX_WORKERS", "GOPROXY"):
        monkeypatch.delenv(var, raising=False)

    return fake_home
