"""Logging configuration and setup utilities."""

import logging
import logging.handlers
import os
import sys
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from ..config.settings import CalendarCoreSettings

# Custom log level between INFO(20) and DEBUG(10)
VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

ROOT_LOGGER_NAME = "calendarcore"

# Libraries whose chatter is capped at LoggingSettings.third_party_level
THIRD_PARTY_LOGGERS = ("icalendar", "pytz", "yaml")

# Size at which the log file is rotated
MAX_LOG_BYTES = 10 * 1024 * 1024


def verbose(self: logging.Logger, message: Any, *args: Any, **kwargs: Any) -> None:
    """Add verbose() method to Logger class for detailed diagnostic logging.

    VERBOSE (15) sits between DEBUG and INFO. The recurrence normalizer
    logs its per-event summary at this level; parser detail stays at DEBUG.

    Example:
        >>> logger = logging.getLogger(__name__)
        >>> logger.verbose("Normalized event %s", uid)
    """
    if self.isEnabledFor(VERBOSE):
        self._log(VERBOSE, message, args, **kwargs)


# Add verbose method to all Logger instances
logging.Logger.verbose = verbose  # type: ignore[attr-defined]


def get_log_level(level_name: str) -> int:
    """Get numeric log level from string name, including custom VERBOSE level.

    Args:
        level_name: Log level name (DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL),
            case insensitive

    Returns:
        Numeric log level value

    Raises:
        ValueError: If the level name is not recognized
    """
    level_name = level_name.upper()
    if level_name == "VERBOSE":
        return VERBOSE
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {level_name}")
    return level


# ANSI codes per level: (8-color terminal, 256-color or truecolor terminal)
LEVEL_COLORS = {
    logging.DEBUG: ("35", "95"),
    VERBOSE: ("32", "92"),
    logging.INFO: ("34", "94"),
    logging.WARNING: ("33", "93"),
    logging.ERROR: ("31", "91"),
    logging.CRITICAL: ("31;1", "91;1"),
}


def detect_color_mode(stream: Any) -> str:
    """Return ``"bright"``, ``"basic"`` or ``"none"`` for the terminal behind ``stream``.

    ``NO_COLOR`` in the environment, a redirected stream and ``TERM=dumb``
    all disable colors.
    """
    isatty = getattr(stream, "isatty", None)
    if "NO_COLOR" in os.environ or isatty is None or not isatty():
        return "none"

    term = os.environ.get("TERM", "").lower()
    if term == "dumb":
        return "none"
    if os.environ.get("COLORTERM", "").lower() in ("truecolor", "24bit") or "256color" in term:
        return "bright"
    if "color" in term or (os.name == "nt" and "WT_SESSION" in os.environ):
        return "basic"
    return "none"


class AutoColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when the console supports it."""

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        *,
        enable_colors: bool = True,
        stream: Any = None,
    ) -> None:
        super().__init__(fmt, datefmt)
        target = stream if stream is not None else sys.stderr
        self.color_mode = detect_color_mode(target) if enable_colors else "none"

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        codes = LEVEL_COLORS.get(record.levelno)
        if self.color_mode == "none" or codes is None:
            return formatted

        code = codes[1] if self.color_mode == "bright" else codes[0]
        return formatted.replace(record.levelname, f"\033[{code}m{record.levelname}\033[0m", 1)


def setup_logging(settings: "CalendarCoreSettings") -> logging.Logger:
    """Configure the ``calendarcore`` logger from settings.

    Console output goes to stderr so that command output on stdout stays
    machine readable. File output, when enabled, uses a size-rotated file
    in ``settings.log_directory``.

    Args:
        settings: Application settings holding the ``logging`` section

    Returns:
        The configured ``calendarcore`` logger
    """
    log_settings = settings.logging

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)  # Handlers do the filtering

    # Clear any existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_settings.console_enabled:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(get_log_level(log_settings.console_level))
        console_handler.setFormatter(
            AutoColoredFormatter(
                "%(asctime)s - %(levelname)s - %(message)s",
                datefmt="%H:%M:%S",
                enable_colors=log_settings.console_colors,
                stream=console_handler.stream,
            )
        )
        logger.addHandler(console_handler)

    if log_settings.file_enabled:
        log_dir = settings.log_directory
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / f"{log_settings.file_prefix}.log"

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=MAX_LOG_BYTES,
            backupCount=log_settings.max_log_files,
            encoding="utf-8",
        )
        file_handler.setLevel(get_log_level(log_settings.file_level))

        if log_settings.include_function_names:
            file_format = (
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
            )
        else:
            file_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        file_handler.setFormatter(logging.Formatter(file_format, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

        logger.debug(f"Logging to file: {log_path}")

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    third_party_level = get_log_level(log_settings.third_party_level)
    for lib in THIRD_PARTY_LOGGERS:
        logging.getLogger(lib).setLevel(third_party_level)

    logger.debug(f"Logging initialized at {log_settings.console_level} level")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``calendarcore`` namespace.

    Example:
        >>> logger = get_logger("cli")
        >>> logger.name
        'calendarcore.cli'
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def apply_command_line_overrides(
    settings: "CalendarCoreSettings", args: Any
) -> "CalendarCoreSettings":
    """Apply command-line argument overrides to logging settings.

    Priority: Command-line > Environment > YAML > Defaults. Modifies the
    settings object in-place and returns it.
    """
    if getattr(args, "log_level", None):
        settings.logging.console_level = args.log_level
        settings.logging.file_level = args.log_level

    if getattr(args, "verbose", False):
        settings.logging.console_level = "VERBOSE"
        settings.logging.file_level = "VERBOSE"

    if getattr(args, "quiet", False):
        settings.logging.console_level = "ERROR"

    if getattr(args, "log_dir", None):
        settings.logging.file_enabled = True
        settings.logging.file_directory = args.log_dir

    if getattr(args, "no_log_colors", False):
        settings.logging.console_colors = False

    return settings
