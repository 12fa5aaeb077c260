"""
Unit tests for the locking module.

Tests cover:
- Lock file naming
- Lock acquisition, release and timeout
- Build coordination with re-check after waiting
"""

import re
import threading
import time

import pytest
from filelock import Timeout as LockTimeout

from shed.core.locking import BuildCoordinator, LockManager, lock_file_name


class TestLockFileName:
    """Tests for lock_file_name()."""

    def test_sanitizes_key(self):
        name = lock_file_name("github.com/a/b@v1.0.0:linux-amd64")
        assert re.fullmatch(r"build-github\.com-a-b-v1\.0\.0-linux-amd64-[0-9a-f]{16}\.lock", name)

    def test_stable(self):
        key = "github.com/a/b@v1.0.0:linux-amd64"
        assert lock_file_name(key) == lock_file_name(key)

    @pytest.mark.parametrize(
        "a,b",
        [
            ("github.com/a/b@v1:linux-amd64", "github.com/a-b@v1:linux-amd64"),
            ("github.com/A/b@v1:linux-amd64", "github.com/a/b@v1:linux-amd64"),
        ],
    )
    def test_keys_with_same_readable_part(self, a, b):
        assert lock_file_name(a).lower() != lock_file_name(b).lower()

    def test_distinct_keys_distinct_names(self):
        assert lock_file_name("example.org/a@v1") != lock_file_name("example.org/a@v2")


class TestLockManager:
    """Tests for LockManager class."""

    def test_build_lock_creates_lock_dir(self, tmp_path):
        lock_dir = tmp_path / "lock"
        manager = LockManager(lock_dir)

        with manager.build_lock("example.org/a@v1", timeout=5):
            assert lock_dir.is_dir()
            assert (lock_dir / lock_file_name("example.org/a@v1")).exists()

    def test_build_lock_released(self, tmp_path):
        manager = LockManager(tmp_path)

        with manager.build_lock("example.org/a@v1", timeout=5):
            pass
        # Acquiring again proves the lock was released
        with manager.build_lock("example.org/a@v1", timeout=1):
            pass

    def test_build_lock_released_on_exception(self, tmp_path):
        manager = LockManager(tmp_path)

        with pytest.raises(RuntimeError):
            with manager.build_lock("example.org/a@v1", timeout=5):
                raise RuntimeError("build failed")

        with manager.build_lock("example.org/a@v1", timeout=1):
            pass

    def test_build_lock_timeout(self, tmp_path):
        """A second holder times out while the lock is held by another thread."""
        manager = LockManager(tmp_path)
        acquired = threading.Event()
        release = threading.Event()

        def holder():
            with manager.build_lock("example.org/a@v1", timeout=5):
                acquired.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        try:
            assert acquired.wait(5)
            with pytest.raises(LockTimeout):
                with manager.build_lock("example.org/a@v1", timeout=0.1):
                    pass
        finally:
            release.set()
            thread.join()

    def test_different_keys_do_not_block(self, tmp_path):
        manager = LockManager(tmp_path)

        with manager.build_lock("example.org/a@v1", timeout=5):
            with manager.build_lock("example.org/b@v1", timeout=0.5):
                pass


class TestBuildCoordinator:
    """Tests for BuildCoordinator class."""

    def test_should_build_when_missing(self, tmp_path):
        coordinator = BuildCoordinator(LockManager(tmp_path / "lock"), timeout=5)
        executable = tmp_path / "tool"

        with coordinator.coordinate_build("key", executable) as should_build:
            assert should_build is True

    def test_no_build_when_present(self, tmp_path):
        coordinator = BuildCoordinator(LockManager(tmp_path / "lock"), timeout=5)
        executable = tmp_path / "tool"
        executable.write_text("x")

        with coordinator.coordinate_build("key", executable) as should_build:
            assert should_build is False

    def test_rechecks_after_waiting(self, tmp_path):
        """A waiter sees the executable written by the lock holder and skips its build."""
        manager = LockManager(tmp_path / "lock")
        executable = tmp_path / "tool"
        acquired = threading.Event()
        results = []

        def builder():
            with BuildCoordinator(manager, timeout=5).coordinate_build(
                "key", executable
            ) as should_build:
                results.append(("first", should_build))
                acquired.set()
                time.sleep(0.2)
                executable.write_text("built")

        thread = threading.Thread(target=builder)
        thread.start()
        assert acquired.wait(5)

        with BuildCoordinator(manager, timeout=5).coordinate_build(
            "key", executable
        ) as should_build:
            results.append(("second", should_build))
        thread.join()

        assert results == [("first", True), ("second", False)]
