"""CLI module for calendarcore.

Reads calendar text (or a bare property block) from a file or stdin,
normalizes the recurrence metadata of every event and prints the storage
mappings as JSON.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from calendarcore.config.settings import CalendarCoreSettings
from calendarcore.ics.exceptions import ICSFormatError
from calendarcore.ics.parser import iter_events, parse
from calendarcore.ics.recurrence import RecurrenceNormalizer
from calendarcore.utils.logging import apply_command_line_overrides, setup_logging

from .parser import create_parser

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FORMAT_ERROR = 1
EXIT_USAGE_ERROR = 2


def _settings_from_args(args: Any) -> CalendarCoreSettings:
    """Build settings, letting command-line options win over env and YAML."""
    overrides: dict[str, Any] = {}
    if args.encoding:
        overrides["rdate_encoding"] = args.encoding
    if args.timezone_backend:
        overrides["timezone_backend"] = args.timezone_backend
    if args.skip_invalid:
        overrides["skip_invalid_events"] = True

    config_path = Path(args.config) if args.config else None
    settings = CalendarCoreSettings(config_path=config_path, **overrides)
    return apply_command_line_overrides(settings, args)


def _read_input(file: Optional[str]) -> str:
    if file is None or file == "-":
        return sys.stdin.read()
    return Path(file).read_text(encoding="utf-8")


def normalize_text(
    text: str, normalizer: RecurrenceNormalizer, skip_invalid: bool = False
) -> list[dict[str, Any]]:
    """Normalize calendar text into a list of storage mappings.

    Text containing VEVENT components yields one mapping per event;
    otherwise the top-level properties are normalized as a single event.
    """
    root = parse(text)
    events = list(iter_events(root))

    if events:
        pairs = normalizer.normalize_all(events, skip_invalid=skip_invalid)
        return [record.to_storage_values() for _uid, record in pairs]

    return [normalizer.normalize(root).to_storage_values()]


def run(argv: Optional[list[str]] = None) -> int:
    """Run the command line interface.

    Args:
        argv: Arguments to parse (defaults to ``sys.argv[1:]``)

    Returns:
        Exit code (0 for success, 1 for input errors, 2 for usage errors)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = _settings_from_args(args)
    setup_logging(settings)

    try:
        resolver = settings.create_timezone_resolver()
    except ValueError as e:
        print(f"calendarcore: error: {e}", file=sys.stderr)
        return EXIT_USAGE_ERROR

    normalizer = RecurrenceNormalizer(resolver, settings.rdate_encoding)

    try:
        text = _read_input(args.file)
    except OSError as e:
        print(f"calendarcore: error: cannot read {args.file}: {e}", file=sys.stderr)
        return EXIT_FORMAT_ERROR

    try:
        mappings = normalize_text(text, normalizer, skip_invalid=settings.skip_invalid_events)
    except ICSFormatError as e:
        logger.debug("Normalization failed", exc_info=True)
        print(f"calendarcore: error: {e.message}", file=sys.stderr)
        return EXIT_FORMAT_ERROR

    json.dump(mappings, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return EXIT_OK


__all__ = ["create_parser", "normalize_text", "run"]
