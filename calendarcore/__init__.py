"""calendarcore - iCalendar component parsing and recurrence normalization.

Parses RFC 5545 style content lines into a component tree and flattens the
recurrence properties of each event into a storage-ready record.
"""

__version__ = "1.0.0"
__author__ = "CalendarCore Team"
__email__ = "support@calendarcore.local"
__description__ = "iCalendar component parser and recurrence metadata normalizer"

# Package metadata
__all__ = [
    "__author__",
    "__description__",
    "__email__",
    "__version__",
]
