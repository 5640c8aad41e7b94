"""Command-line argument parsing for calendarcore."""

import argparse

from calendarcore.ics.models import RDateEncoding
from calendarcore.timezone.service import RESOLVER_BACKENDS

LOG_LEVEL_CHOICES = ["DEBUG", "VERBOSE", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _log_level(value: str) -> str:
    level = value.upper()
    if level not in LOG_LEVEL_CHOICES:
        raise argparse.ArgumentTypeError(
            f"invalid log level {value!r} (choose from {', '.join(LOG_LEVEL_CHOICES)})"
        )
    return level


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the command line argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="calendarcore",
        description="Normalize iCalendar recurrence metadata into storage records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  calendarcore event.ics                        # Normalize every VEVENT in a file
  cat props.txt | calendarcore                  # Normalize a bare property block from stdin
  calendarcore --encoding parameters cal.ics    # Keep RDATE/EXDATE parameters as written
  calendarcore --skip-invalid -v cal.ics        # Skip broken events, log progress
        """,
    )

    parser.add_argument(
        "file",
        nargs="?",
        metavar="FILE",
        help="Calendar or property block to read (default: stdin)",
    )

    # Configuration
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="YAML configuration file (default: ./config/config.yaml or "
        "~/.config/calendarcore/config.yaml)",
    )

    # Normalization options
    normalize_group = parser.add_argument_group("normalization")
    normalize_group.add_argument(
        "--skip-invalid",
        action="store_true",
        default=None,
        help="Skip events that fail to normalize instead of exiting with an error",
    )
    normalize_group.add_argument(
        "--encoding",
        choices=[encoding.value for encoding in RDateEncoding],
        help="RDATE/EXDATE encoding (default: legacy)",
    )
    normalize_group.add_argument(
        "--timezone-backend",
        choices=sorted(RESOLVER_BACKENDS),
        help="Timezone database backend (default: zoneinfo)",
    )

    # Logging options
    logging_group = parser.add_argument_group("logging")
    logging_group.add_argument(
        "--log-level",
        type=_log_level,
        metavar="LEVEL",
        help=f"Console log level: {', '.join(LOG_LEVEL_CHOICES)}",
    )
    logging_group.add_argument(
        "-v", "--verbose", action="store_true", help="Shortcut for --log-level VERBOSE"
    )
    logging_group.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only show errors on console (sets console level to ERROR)",
    )
    logging_group.add_argument(
        "--log-dir", metavar="DIR", help="Also write logs to a rotating file in DIR"
    )
    logging_group.add_argument(
        "--no-log-colors", action="store_true", help="Disable colored console logging"
    )

    return parser
