"""Allow running the CLI with ``python -m shed.cli``."""

from shed.cli.parser import main

if __name__ == "__main__":
    main()
