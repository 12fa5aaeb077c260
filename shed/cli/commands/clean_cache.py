"""
Clean-cache command: delete every cached tool.
"""

from shed.cli.utils import create_client


def run(args) -> int:
    shed = create_client(args)
    shed.clean_cache()
    return 0
