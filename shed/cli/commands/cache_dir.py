"""
Cache-dir command: print the tool cache directory.
"""

from shed.cli.utils import create_client


def run(args) -> int:
    shed = create_client(args)
    print(shed.cache_dir())
    return 0
