"""Entry point for dailyflow when run as a module.

This allows the package to be run with: python -m dailyflow
"""

import sys

from dailyflow.cli import main

if __name__ == "__main__":
    sys.exit(main())
