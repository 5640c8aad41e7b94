"""
Timezone package for calendarcore.

Provides the injectable timezone-offset lookup used by the recurrence
normalizer. Uses zoneinfo by default, with pytz as an alternative backend.

Example usage:
    >>> from datetime import datetime
    >>> from calendarcore.timezone import get_timezone_resolver, local_to_utc
    >>>
    >>> resolver = get_timezone_resolver()
    >>> local_to_utc(resolver, "America/New_York", datetime(2008, 2, 21, 7, 0))
    datetime.datetime(2008, 2, 21, 12, 0, tzinfo=datetime.timezone.utc)
"""

from .service import (
    UTC_TZID,
    WINDOWS_TZ_ALIASES,
    BaseTimezoneResolver,
    RESOLVER_BACKENDS,
    PytzTimezoneResolver,
    TimezoneError,
    TimezoneNotFoundError,
    TimezoneResolver,
    ZoneInfoTimezoneResolver,
    create_timezone_resolver,
    get_timezone_resolver,
    local_to_utc,
    utc_to_local,
)

__all__ = [
    "UTC_TZID",
    "WINDOWS_TZ_ALIASES",
    "BaseTimezoneResolver",
    "RESOLVER_BACKENDS",
    "PytzTimezoneResolver",
    "TimezoneError",
    "TimezoneNotFoundError",
    "TimezoneResolver",
    "ZoneInfoTimezoneResolver",
    "create_timezone_resolver",
    "get_timezone_resolver",
    "local_to_utc",
    "utc_to_local",
]
