"""
Unit tests for filesystem utilities.
"""

import os
import stat

import pytest

from shed.core.exceptions import ShedError
from shed.core.filesystem import (
    FilesystemError,
    atomic_write,
    is_relative_to,
    make_executable,
    safe_rmtree,
    temporary_directory,
)


class TestAtomicWrite:
    """Tests for atomic_write()."""

    def test_write_text(self, tmp_path):
        target = tmp_path / "out.txt"
        atomic_write(target, "hello\n")
        assert target.read_text() == "hello\n"

    def test_write_bytes(self, tmp_path):
        target = tmp_path / "out.bin"
        atomic_write(target, b"\x00\x01")
        assert target.read_bytes() == b"\x00\x01"

    def test_replaces_existing(self, tmp_path):
        target = tmp_path / "out.txt"
        target.write_text("old")
        atomic_write(target, "new")
        assert target.read_text() == "new"

    def test_creates_parent_directories(self, tmp_path):
        target = tmp_path / "a" / "b" / "out.txt"
        atomic_write(target, "x")
        assert target.read_text() == "x"

    def test_no_temp_files_left(self, tmp_path):
        target = tmp_path / "out.txt"
        atomic_write(target, "x")
        assert [p.name for p in tmp_path.iterdir()] == ["out.txt"]

    def test_original_kept_on_failure(self, tmp_path, monkeypatch):
        target = tmp_path / "out.txt"
        target.write_text("original")

        def fail_replace(self, other):
            raise OSError("disk full")

        monkeypatch.setattr("pathlib.Path.replace", fail_replace)
        with pytest.raises(OSError):
            atomic_write(target, "new")

        assert target.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["out.txt"]

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    @pytest.mark.parametrize("mode", [0o644, 0o664, 0o600])
    def test_keeps_existing_mode(self, tmp_path, mode):
        target = tmp_path / "shed.lock"
        target.write_text("old")
        target.chmod(mode)

        atomic_write(target, "new")
        assert stat.S_IMODE(target.stat().st_mode) == mode

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_new_file_gets_default_mode(self, tmp_path):
        plain = tmp_path / "plain.txt"
        plain.write_text("x")
        target = tmp_path / "out.txt"

        atomic_write(target, "x")
        assert stat.S_IMODE(target.stat().st_mode) == stat.S_IMODE(plain.stat().st_mode)


class TestSafeRmtree:
    """Tests for safe_rmtree()."""

    def test_removes_directory(self, tmp_path):
        victim = tmp_path / "victim"
        (victim / "sub").mkdir(parents=True)
        (victim / "sub" / "file").write_text("x")

        safe_rmtree(victim)
        assert not victim.exists()

    def test_missing_path_is_noop(self, tmp_path):
        safe_rmtree(tmp_path / "missing")

    def test_refuses_outside_prefix(self, tmp_path):
        victim = tmp_path / "victim"
        victim.mkdir()
        with pytest.raises(ValueError, match="outside of"):
            safe_rmtree(victim, require_prefix=tmp_path / "other")
        assert victim.exists()

    def test_rejects_file(self, tmp_path):
        target = tmp_path / "file"
        target.write_text("x")
        with pytest.raises(FilesystemError) as exc_info:
            safe_rmtree(target)
        assert isinstance(exc_info.value, ShedError)


class TestTemporaryDirectory:
    """Tests for temporary_directory()."""

    def test_created_under_parent_and_removed(self, tmp_path):
        with temporary_directory(tmp_path / "tmp", prefix="build-") as scratch:
            assert scratch.is_dir()
            assert scratch.parent == tmp_path / "tmp"
            assert scratch.name.startswith("build-")
            (scratch / "file").write_text("x")

        assert not scratch.exists()

    def test_removed_on_exception(self, tmp_path):
        with pytest.raises(RuntimeError):
            with temporary_directory(tmp_path) as scratch:
                raise RuntimeError("boom")
        assert not scratch.exists()


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
def test_make_executable(tmp_path):
    target = tmp_path / "tool"
    target.write_text("#!/bin/sh\n")
    target.chmod(0o644)

    make_executable(target)
    assert os.access(target, os.X_OK)


def test_is_relative_to(tmp_path):
    assert is_relative_to(tmp_path / "a" / "b", tmp_path)
    assert not is_relative_to(tmp_path, tmp_path / "a")
