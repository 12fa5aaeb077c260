"""
Run command: execute a pinned tool from the cache.
"""

import logging
import subprocess

from shed.cli.utils import create_client

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run a pinned tool with the remaining arguments.

    Returns:
        The tool's exit code
    """
    shed = create_client(args)
    executable = shed.tool_path(args.tool)

    tool_args = list(args.tool_args)
    if tool_args and tool_args[0] == "--":
        tool_args = tool_args[1:]

    logger.debug(f"Running {executable} {' '.join(tool_args)}")
    try:
        completed = subprocess.run([str(executable), *tool_args])
    except OSError as e:
        logger.error(f"Failed to run {executable}: {e}")
        return 1
    return completed.returncode
