"""
Which command: print the cached executable of a pinned tool.
"""

from shed.cli.utils import create_client


def run(args) -> int:
    shed = create_client(args)
    print(shed.tool_path(args.tool))
    return 0
