"""Entry point for `python -m calendarcore` command."""

import sys
from typing import NoReturn

from calendarcore.cli import run


def main() -> NoReturn:
    """Run the calendarcore CLI and exit with its status code."""
    sys.exit(run())


if __name__ == "__main__":
    main()
