"""Timezone resolution service for calendarcore.

Wraps the process-wide timezone database behind the ``TimezoneResolver``
protocol so the recurrence normalizer receives it as an explicit capability.
Uses zoneinfo by default with a pytz-backed alternative.
"""

import logging
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Any, ClassVar, Optional, Protocol, runtime_checkable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytz

logger = logging.getLogger(__name__)

UTC_TZID = "UTC"


class TimezoneError(Exception):
    """Raised when timezone operations fail."""


class TimezoneNotFoundError(TimezoneError):
    """Raised when a timezone identifier cannot be resolved."""

    def __init__(self, message: str, tzid: Optional[str] = None) -> None:
        super().__init__(message)
        self.tzid = tzid


# Windows timezone names to IANA identifier mapping
# Common Windows timezones used in ICS files from Outlook/Exchange
WINDOWS_TZ_ALIASES: dict[str, str] = {
    "Pacific Standard Time": "America/Los_Angeles",
    "Mountain Standard Time": "America/Denver",
    "Central Standard Time": "America/Chicago",
    "Eastern Standard Time": "America/New_York",
    "Alaskan Standard Time": "America/Anchorage",
    "Hawaiian Standard Time": "Pacific/Honolulu",
    "Arizona Standard Time": "America/Phoenix",
    "GMT Standard Time": "Europe/London",
    "Central European Standard Time": "Europe/Paris",
    "W. Europe Standard Time": "Europe/Berlin",
    "China Standard Time": "Asia/Shanghai",
    "Tokyo Standard Time": "Asia/Tokyo",
    "India Standard Time": "Asia/Kolkata",
    "AUS Eastern Standard Time": "Australia/Sydney",
}


@runtime_checkable
class TimezoneResolver(Protocol):
    """Read-only lookup of UTC offsets for timezone identifiers."""

    def offset_for(self, tzid: str, instant: datetime) -> int:
        """Return the offset east of UTC, in seconds, of ``tzid`` at ``instant``.

        Raises:
            TimezoneNotFoundError: If ``tzid`` cannot be resolved.
        """
        ...


class BaseTimezoneResolver:
    """Shared alias handling and zone caching for the concrete resolvers.

    Subclasses implement ``_load_zone`` for their timezone library. Loaded
    zones are cached per resolver so one TZID resolves consistently for the
    lifetime of the resolver.
    """

    backend: ClassVar[str] = ""

    def __init__(self, aliases: Optional[dict[str, str]] = None) -> None:
        self.aliases: dict[str, str] = dict(WINDOWS_TZ_ALIASES)
        if aliases:
            self.aliases.update(aliases)
        self._zones: dict[str, Any] = {}

    def _load_zone(self, key: str) -> Any:
        raise NotImplementedError

    def get_zone(self, tzid: str) -> Any:
        """Resolve a TZID (or alias) to a tzinfo object.

        Raises:
            TimezoneNotFoundError: If the identifier is empty or unknown.
        """
        if not tzid or not tzid.strip():
            raise TimezoneNotFoundError("Empty timezone identifier", tzid)

        key = self.aliases.get(tzid.strip(), tzid.strip())
        zone = self._zones.get(key)
        if zone is None:
            zone = self._load_zone(key)
            self._zones[key] = zone
            logger.debug(f"Loaded {self.backend} timezone {key!r} for TZID {tzid!r}")
        return zone

    def offset_for(self, tzid: str, instant: datetime) -> int:
        """Return the UTC offset in seconds of ``tzid`` at ``instant``.

        Naive instants are taken to be UTC.
        """
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=dt_timezone.utc)

        offset = instant.astimezone(self.get_zone(tzid)).utcoffset()
        if offset is None:
            raise TimezoneNotFoundError(f"Timezone {tzid!r} has no UTC offset", tzid)
        return int(offset.total_seconds())


class ZoneInfoTimezoneResolver(BaseTimezoneResolver):
    """Resolver backed by the standard library ``zoneinfo`` database."""

    backend = "zoneinfo"

    def _load_zone(self, key: str) -> Any:
        try:
            return ZoneInfo(key)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise TimezoneNotFoundError(f"Unknown timezone {key!r}: {e}", key) from e


class PytzTimezoneResolver(BaseTimezoneResolver):
    """Resolver backed by the ``pytz`` Olson database."""

    backend = "pytz"

    def _load_zone(self, key: str) -> Any:
        try:
            return pytz.timezone(key)
        except pytz.UnknownTimeZoneError as e:
            raise TimezoneNotFoundError(f"Unknown timezone {key!r}", key) from e


RESOLVER_BACKENDS: dict[str, type[BaseTimezoneResolver]] = {
    ZoneInfoTimezoneResolver.backend: ZoneInfoTimezoneResolver,
    PytzTimezoneResolver.backend: PytzTimezoneResolver,
}

# Default resolver instances, one per backend
_default_resolvers: dict[str, BaseTimezoneResolver] = {}


def create_timezone_resolver(
    backend: str = "zoneinfo", aliases: Optional[dict[str, str]] = None
) -> BaseTimezoneResolver:
    """Create a new resolver for the named backend.

    Args:
        backend: ``zoneinfo`` or ``pytz``
        aliases: Extra TZID aliases consulted before lookup

    Raises:
        ValueError: If the backend name is not recognised.
    """
    try:
        resolver_class = RESOLVER_BACKENDS[backend.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown timezone backend {backend!r}; expected one of {sorted(RESOLVER_BACKENDS)}"
        ) from None
    return resolver_class(aliases)


def get_timezone_resolver(backend: str = "zoneinfo") -> BaseTimezoneResolver:
    """Get the shared default resolver for a backend, creating it lazily."""
    key = backend.lower()
    if key not in _default_resolvers:
        _default_resolvers[key] = create_timezone_resolver(key)
    return _default_resolvers[key]


def local_to_utc(resolver: TimezoneResolver, tzid: str, local: datetime) -> datetime:
    """Convert a naive wall-clock time in ``tzid`` to an aware UTC datetime.

    Only instant-based offset lookups are available, so the offset is looked
    up at the wall time read as UTC and then refined once at the resulting
    instant. This settles every local time except those inside a DST gap.
    """
    guess = local.replace(tzinfo=dt_timezone.utc)
    offset = resolver.offset_for(tzid, guess)
    instant = guess - timedelta(seconds=offset)

    refined = resolver.offset_for(tzid, instant)
    if refined != offset:
        instant = guess - timedelta(seconds=refined)
    return instant


def utc_to_local(resolver: TimezoneResolver, tzid: str, instant: datetime) -> datetime:
    """Convert an aware instant to naive wall-clock time in ``tzid``."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=dt_timezone.utc)
    offset = resolver.offset_for(tzid, instant)
    return (instant + timedelta(seconds=offset)).replace(tzinfo=None)
