"""Allow running tailout with ``python -m tailout``."""

from tailout.cli.main import main

if __name__ == "__main__":
    main()
