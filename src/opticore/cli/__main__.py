"""Entry point for ``python -m opticore.cli``."""

import sys

from opticore.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
