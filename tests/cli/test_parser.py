"""
Tests for the shed command-line interface.

Commands run end to end against a temporary project and a cache backed by
MockBuilder.
"""

import logging
import os
import signal
import sys
from unittest.mock import patch

import pytest

from shed.cache.store import Cache
from shed.cli.parser import CLI, main
from shed.core.tool import Tool
from tests.fixtures.tools import EJSON, GO_FISH, GOLANGCI_LINT, read_lockfile, write_lockfile


@pytest.fixture(autouse=True)
def _restore_logging():
    """The CLI reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def run_cli(isolated_env, cache_root, mock_builder, linux_platform, lockfile_path):
    """Run the CLI with the mock builder and a temporary lockfile and cache."""

    def fake_create_cache(settings):
        return Cache(settings.cache_dir, builder=mock_builder, platform=linux_platform)

    def run(*args):
        argv = ["--lockfile", str(lockfile_path), "--cache-dir", str(cache_root), *args]
        with patch("shed.cli.utils.create_cache", side_effect=fake_create_cache):
            return CLI().run(argv)

    return run


class TestParser:
    def test_no_command_prints_help(self, capsys):
        assert CLI().run([]) == 1
        assert "usage: shed" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            CLI().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "shed" in capsys.readouterr().out

    def test_global_options(self):
        args = CLI().parse_args(
            ["-v", "--lockfile", "x/shed.lock", "--cache-dir", "c", "install", "go-fish@v0.1.0"]
        )
        assert args.verbose is True
        assert str(args.lockfile) == os.path.join("x", "shed.lock")
        assert args.command == "install"
        assert args.tools == ["go-fish@v0.1.0"]

    def test_run_collects_tool_arguments(self):
        args = CLI().parse_args(["run", "golangci-lint", "run", "--fast", "./..."])
        assert args.tool == "golangci-lint"
        assert args.tool_args == ["run", "--fast", "./..."]

    def test_uninstall_requires_tool(self):
        with pytest.raises(SystemExit):
            CLI().parse_args(["uninstall"])

    def test_main_exits_with_code(self):
        with patch.object(sys, "argv", ["shed"]):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1


class TestInstallCommand:
    def test_install_and_list(self, run_cli, lockfile_path, capsys):
        assert run_cli("install", GO_FISH, f"{EJSON}@v1.1.0") == 0

        assert read_lockfile(lockfile_path).to_list() == [
            Tool(EJSON, "v1.1.0"),
            Tool(GO_FISH, "v0.1.0"),
        ]

        capsys.readouterr()
        assert run_cli("list") == 0
        out = capsys.readouterr().out.splitlines()
        assert out == [f"{EJSON} v1.1.0", f"{GO_FISH} v0.1.0"]

    def test_install_partial_failure_exit_code(self, run_cli, lockfile_path):
        assert run_cli("install", GO_FISH, "golangci-lint") == 1
        assert read_lockfile(lockfile_path).get("go-fish").version == "v0.1.0"

    def test_install_restores_sigint_handler(self, run_cli):
        before = signal.getsignal(signal.SIGINT)
        run_cli("install", GO_FISH)
        assert signal.getsignal(signal.SIGINT) is before

    def test_install_nothing(self, run_cli):
        assert run_cli("install") == 0


class TestUninstallCommand:
    def test_uninstall(self, run_cli, lockfile_path):
        write_lockfile(lockfile_path, [Tool(GO_FISH, "v0.1.0"), Tool(EJSON, "v1.2.2")])

        assert run_cli("uninstall", "go-fish") == 0
        assert read_lockfile(lockfile_path).to_list() == [Tool(EJSON, "v1.2.2")]

    def test_uninstall_unknown(self, run_cli, lockfile_path):
        write_lockfile(lockfile_path, [Tool(GO_FISH, "v0.1.0")])
        assert run_cli("uninstall", "ejson") == 1


class TestToolCommands:
    def test_which(self, run_cli, cache_root, capsys):
        run_cli("install", f"{GOLANGCI_LINT}@v1.28.3")
        capsys.readouterr()

        assert run_cli("which", "golangci-lint") == 0
        path = capsys.readouterr().out.strip()
        assert path.startswith(str(cache_root))
        assert path.endswith("golangci-lint")

    def test_which_not_installed(self, run_cli, lockfile_path):
        write_lockfile(lockfile_path, [Tool(EJSON, "v1.2.2")])
        assert run_cli("which", "ejson") == 1

    def test_which_unknown_tool(self, run_cli):
        assert run_cli("which", "ejson") == 1

    def test_list_paths(self, run_cli, lockfile_path, capsys):
        write_lockfile(lockfile_path, [Tool(EJSON, "v1.2.2")])

        assert run_cli("list", "--paths") == 0
        assert "(not installed)" in capsys.readouterr().out

    @pytest.mark.skipif(os.name == "nt", reason="mock executables are shell scripts")
    def test_run_propagates_exit_code(self, run_cli, capfd):
        run_cli("install", GO_FISH)

        assert run_cli("run", "go-fish", "--", "ignored") == 0
        assert f"{GO_FISH} v0.1.0" in capfd.readouterr().out

    def test_run_passes_arguments(self, run_cli):
        run_cli("install", GO_FISH)

        with patch("shed.cli.commands.run.subprocess.run") as sub:
            sub.return_value.returncode = 3
            assert run_cli("run", "go-fish", "--", "-x", "y") == 3

        cmd = sub.call_args.args[0]
        assert cmd[0].endswith("go-fish")
        assert cmd[1:] == ["-x", "y"]


class TestCacheCommands:
    def test_cache_dir(self, run_cli, cache_root, capsys):
        assert run_cli("cache-dir") == 0
        assert capsys.readouterr().out.strip() == str(cache_root)
        assert cache_root.is_dir()

    def test_clean_cache(self, run_cli, cache_root):
        run_cli("install", GO_FISH)
        assert cache_root.exists()

        assert run_cli("clean-cache") == 0
        assert not cache_root.exists()

    def test_clean_cache_on_regular_file(self, run_cli, tmp_path):
        not_a_dir = tmp_path / "cachefile"
        not_a_dir.write_text("")

        assert run_cli("--cache-dir", str(not_a_dir), "clean-cache") == 1
        assert not_a_dir.is_file()

    def test_unexpected_error_exit_code(self, run_cli):
        with patch("shed.cli.commands.list_tools.run", side_effect=RuntimeError("boom")):
            assert run_cli("list") == 1


def test_invalid_config_file(run_cli, tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("max_workers: lots\n")

    assert run_cli("--config", str(config), "list") == 1
