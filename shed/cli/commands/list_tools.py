"""
List command: print pinned tools.
"""

import logging

from shed.cli.utils import create_client
from shed.core.exceptions import ToolNotInstalledError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """Print each pinned tool as ``import_path version``."""
    shed = create_client(args)
    tools = shed.list()
    if not tools:
        logger.info(f"No tools pinned in {shed.lockfile_path}")
        return 0

    for tool in tools:
        line = f"{tool.import_path} {tool.version}"
        if getattr(args, "paths", False):
            try:
                line += f" {shed.cache.tool_path(tool.import_path, tool.version)}"
            except ToolNotInstalledError:
                line += " (not installed)"
        print(line)
    return 0
