"""
Uninstall command: remove tools from the lockfile.
"""

import logging

from shed.cli.utils import create_client, report_errors
from shed.core.exceptions import ErrorList

logger = logging.getLogger(__name__)


def run(args) -> int:
    """Run the uninstall command."""
    shed = create_client(args)
    try:
        shed.uninstall(*args.tools)
    except ErrorList as e:
        report_errors(e, "Failed to uninstall")
        return 1
    return 0
