"""iCalendar component parsing and recurrence normalization module."""

from .exceptions import (
    ICSError,
    ICSFormatError,
    MalformedLineError,
    MissingRequiredPropertyError,
    UnknownTimezoneError,
    UnparseableDateTimeError,
)
from .models import Component, NormalizedRecurrence, Property, PropertyKind, RDateEncoding
from .parser import ComponentParser, iter_events, parse, parse_calendar, parse_event
from .recurrence import RecurrenceNormalizer, build_component, normalize, normalize_calendar

__all__ = [
    "Component",
    "ComponentParser",
    "ICSError",
    "ICSFormatError",
    "MalformedLineError",
    "MissingRequiredPropertyError",
    "NormalizedRecurrence",
    "Property",
    "PropertyKind",
    "RDateEncoding",
    "RecurrenceNormalizer",
    "UnknownTimezoneError",
    "UnparseableDateTimeError",
    "build_component",
    "iter_events",
    "normalize",
    "normalize_calendar",
    "parse",
    "parse_calendar",
    "parse_event",
]
