"""Allow running shed with ``python -m shed``."""

from shed.cli.parser import main

if __name__ == "__main__":
    main()
