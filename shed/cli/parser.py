"""
shed CLI argument parser.

This module implements the command-line interface for shed using argparse.
Each subcommand lives in its own module under ``shed.cli.commands`` and
exposes a ``run(args) -> int`` function.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from shed import __version__

logger = logging.getLogger(__name__)

COMMAND_MODULES = {
    "install": "shed.cli.commands.install",
    "uninstall": "shed.cli.commands.uninstall",
    "list": "shed.cli.commands.list_tools",
    "run": "shed.cli.commands.run",
    "which": "shed.cli.commands.which",
    "clean-cache": "shed.cli.commands.clean_cache",
    "cache-dir": "shed.cli.commands.cache_dir",
}


class CLI:
    """shed command-line interface."""

    def __init__(self):
        """Build the argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Top-level parser: global options plus one subparser per command."""
        parser = argparse.ArgumentParser(
            prog="shed",
            description="shed - pin, build and cache command-line tools per project",
            epilog='Use "shed COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        parser.add_argument("--version", action="version", version=f"shed {__version__}")
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to settings file (default: $SHED_CONFIG or user config dir)",
        )
        parser.add_argument(
            "--lockfile",
            type=Path,
            metavar="PATH",
            help="Path to lockfile (default: nearest shed.lock above the current directory)",
        )
        parser.add_argument(
            "--cache-dir",
            type=Path,
            metavar="PATH",
            help="Tool cache directory (default: user cache dir)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_install_command(subparsers)
        self._add_uninstall_command(subparsers)
        self._add_list_command(subparsers)
        self._add_run_command(subparsers)
        self._add_which_command(subparsers)
        self._add_cache_commands(subparsers)

        return parser

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            help="Install tools and pin them in the lockfile",
            description=(
                "Install tools given as NAME[@VERSION] and pin them in shed.lock.\n"
                "Without arguments, installs every tool already in the lockfile.\n"
                "Use NAME@none to remove a tool."
            ),
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        parser.add_argument(
            "tools",
            nargs="*",
            metavar="TOOL",
            help="Import path or short name, optionally with @VERSION",
        )

    def _add_uninstall_command(self, subparsers):
        """Add 'uninstall' subcommand."""
        parser = subparsers.add_parser(
            "uninstall",
            help="Remove tools from the lockfile",
            description="Remove tools from shed.lock",
        )
        parser.add_argument(
            "tools", nargs="+", metavar="TOOL", help="Import path or short name"
        )

    def _add_list_command(self, subparsers):
        """Add 'list' subcommand."""
        parser = subparsers.add_parser(
            "list",
            help="List pinned tools",
            description="List the tools pinned in shed.lock",
        )
        parser.add_argument(
            "--paths",
            action="store_true",
            help="Also show the cached executable of each tool",
        )

    def _add_run_command(self, subparsers):
        """Add 'run' subcommand."""
        parser = subparsers.add_parser(
            "run",
            help="Run a pinned tool",
            description="Run a pinned tool with the given arguments",
        )
        parser.add_argument("tool", metavar="TOOL", help="Import path or short name")
        parser.add_argument(
            "tool_args",
            nargs=argparse.REMAINDER,
            metavar="ARGS",
            help="Arguments passed to the tool",
        )

    def _add_which_command(self, subparsers):
        """Add 'which' subcommand."""
        parser = subparsers.add_parser(
            "which",
            help="Print the executable path of a pinned tool",
            description="Print the path of a pinned tool's cached executable",
        )
        parser.add_argument("tool", metavar="TOOL", help="Import path or short name")

    def _add_cache_commands(self, subparsers):
        """Add 'clean-cache' and 'cache-dir' subcommands."""
        subparsers.add_parser(
            "clean-cache",
            help="Delete the tool cache",
            description="Delete every cached tool executable",
        )
        subparsers.add_parser(
            "cache-dir",
            help="Print the tool cache directory",
            description="Print the tool cache directory",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """Parse ``args`` (default: ``sys.argv[1:]``)."""
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Parse ``args``, set up logging and run the selected command.

        Returns:
            Process exit code: the command's own code, 1 on any error,
            130 when interrupted
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Interrupted")
            return 130
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """Route log records to stderr at the level chosen by -v/-q."""
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,
        )

    def _dispatch_command(self, args) -> int:
        """Import the command module lazily and call its ``run(args)``."""
        module_name = COMMAND_MODULES.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Console script entry point."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
