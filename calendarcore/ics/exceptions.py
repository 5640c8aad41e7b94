"""ICS-specific exceptions for error handling."""

from typing import Optional


class ICSError(Exception):
    """Base exception for ICS-related errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ICSFormatError(ICSError):
    """Exception raised when component text or property values are malformed."""


class MalformedLineError(ICSFormatError):
    """Exception raised when a content line violates the NAME;PARAMS:VALUE grammar."""

    def __init__(self, message: str, line: str):
        super().__init__(f"{message}: {line!r}")
        self.line = line


class MissingRequiredPropertyError(ICSFormatError):
    """Exception raised when an event lacks DTSTART or any duration source."""

    def __init__(self, message: str, property_name: str):
        super().__init__(message)
        self.property_name = property_name


class UnparseableDateTimeError(ICSFormatError):
    """Exception raised when a date or date-time value has the wrong shape."""

    def __init__(self, message: str, value: Optional[str] = None):
        super().__init__(message)
        self.value = value


class UnknownTimezoneError(ICSFormatError):
    """Exception raised when a TZID cannot be resolved."""

    def __init__(self, message: str, tzid: Optional[str] = None):
        super().__init__(message)
        self.tzid = tzid
