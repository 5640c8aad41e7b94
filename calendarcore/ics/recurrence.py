"""Recurrence metadata normalization for iCalendar event components.

Turns the DTSTART, DTEND/DURATION, RRULE, RDATE, EXRULE and EXDATE properties
of one event into a ``NormalizedRecurrence`` record, and builds event
components back from such records.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from collections.abc import Iterable
from typing import Optional, Union

from icalendar.prop import vDate, vDatetime

from ..timezone import (
    UTC_TZID,
    TimezoneError,
    TimezoneResolver,
    get_timezone_resolver,
    local_to_utc,
    utc_to_local,
)
from ..utils.logging import VERBOSE
from .exceptions import (
    ICSFormatError,
    MissingRequiredPropertyError,
    UnknownTimezoneError,
    UnparseableDateTimeError,
)
from .models import Component, NormalizedRecurrence, Property, PropertyKind, RDateEncoding
from .parser import iter_events, parse, parse_line

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
MILLIS_PER_SECOND = 1000

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_DATE_PATTERN = re.compile(r"^\d{8}$")
_DATETIME_PATTERN = re.compile(r"^\d{8}T\d{6}Z?$")


# Always four-digit years, including those before 1000
def _format_date(moment: datetime) -> str:
    return vDate(moment.date()).to_ical().decode()


def _format_local_datetime(moment: datetime) -> str:
    return vDatetime(moment.replace(tzinfo=None)).to_ical().decode()


@dataclass(frozen=True)
class _Instant:
    """A decoded DTSTART/DTEND value."""

    millis: int
    timezone: str
    all_day: bool


def _to_millis(moment: datetime) -> int:
    return (moment - EPOCH) // timedelta(milliseconds=1)


def _from_millis(millis: int) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)


def decode_date(value: str) -> date:
    """Decode an 8-digit ``YYYYMMDD`` DATE value.

    Raises:
        UnparseableDateTimeError: If the value is not a valid date.
    """
    if not _DATE_PATTERN.match(value):
        raise UnparseableDateTimeError(f"Expected YYYYMMDD date, got {value!r}", value)
    try:
        return vDate.from_ical(value)
    except ValueError as e:
        raise UnparseableDateTimeError(f"Invalid date {value!r}: {e}", value) from e


def decode_datetime(value: str) -> datetime:
    """Decode a ``YYYYMMDDTHHMMSS[Z]`` DATE-TIME value.

    Returns a naive datetime for local/floating values and an aware UTC
    datetime when the value carries the ``Z`` suffix.

    Raises:
        UnparseableDateTimeError: If the value is not a valid date-time.
    """
    if not _DATETIME_PATTERN.match(value):
        raise UnparseableDateTimeError(
            f"Expected YYYYMMDDTHHMMSS[Z] date-time, got {value!r}", value
        )
    try:
        decoded = vDatetime.from_ical(value)
    except ValueError as e:
        raise UnparseableDateTimeError(f"Invalid date-time {value!r}: {e}", value) from e

    if decoded.tzinfo is not None:
        return decoded.astimezone(timezone.utc)
    return decoded


class RecurrenceNormalizer:
    """Normalizer producing canonical recurrence records from event components.

    The timezone database is injected as a ``TimezoneResolver``; the
    normalizer itself holds no per-call state, so one instance can serve
    independent components concurrently.
    """

    def __init__(
        self,
        resolver: Optional[TimezoneResolver] = None,
        rdate_encoding: Union[RDateEncoding, str] = RDateEncoding.LEGACY,
    ) -> None:
        """Initialize normalizer.

        Args:
            resolver: Timezone offset lookup (defaults to the shared zoneinfo resolver)
            rdate_encoding: Flattening policy for RDATE/EXDATE occurrences
        """
        self.resolver = resolver if resolver is not None else get_timezone_resolver()
        self.rdate_encoding = RDateEncoding(rdate_encoding)

    def normalize(self, component: Component) -> NormalizedRecurrence:
        """Normalize the recurrence properties of one event component.

        Properties are first grouped by kind in source order; the record is
        then computed from the groups and built once.

        Args:
            component: Event component (or synthetic root) holding the properties

        Returns:
            The complete normalized record

        Raises:
            MissingRequiredPropertyError: If DTSTART or a duration source is missing
            UnparseableDateTimeError: If a date or date-time value is malformed
            UnknownTimezoneError: If a TZID cannot be resolved
        """
        grouped = self._group_by_kind(component.properties)

        dtstart_props = grouped[PropertyKind.DTSTART]
        if not dtstart_props:
            raise MissingRequiredPropertyError("Event has no DTSTART property", "DTSTART")

        start = self._parse_instant(dtstart_props[0])
        duration = self._compute_duration(start, grouped)

        record = NormalizedRecurrence(
            rrule=self._merge_rules(grouped[PropertyKind.RRULE]),
            rdate=self._encode_dates(grouped[PropertyKind.RDATE]),
            exrule=self._merge_rules(grouped[PropertyKind.EXRULE]),
            exdate=self._encode_dates(grouped[PropertyKind.EXDATE]),
            dtstart_millis=start.millis,
            timezone=start.timezone,
            duration=duration,
            all_day=start.all_day,
        )
        logger.log(
            VERBOSE,
            f"Normalized {component.name}: dtstart={record.dtstart_millis} "
            f"tz={record.timezone} duration={record.duration} all_day={record.all_day}"
        )
        return record

    def normalize_all(
        self, components: Iterable[Component], skip_invalid: bool = False
    ) -> list[tuple[Optional[str], NormalizedRecurrence]]:
        """Normalize several event components, pairing each record with its UID.

        Args:
            components: Event components in document order
            skip_invalid: Log and skip components that fail instead of raising

        Returns:
            ``(uid, record)`` pairs; ``uid`` is None when the event has no UID.

        Raises:
            ICSFormatError: If a component fails and ``skip_invalid`` is False.
        """
        results: list[tuple[Optional[str], NormalizedRecurrence]] = []
        total = 0

        for component in components:
            total += 1
            uid_prop = component.get_first_property("UID")
            uid = uid_prop.value if uid_prop else None
            try:
                record = self.normalize(component)
            except ICSFormatError as e:
                if not skip_invalid:
                    raise
                logger.warning(f"Skipping event {uid or '<no UID>'}: {e}")
                continue
            results.append((uid, record))

        logger.info(f"Normalized {len(results)} of {total} events")
        return results

    @staticmethod
    def _group_by_kind(properties: list[Property]) -> dict[PropertyKind, list[Property]]:
        grouped: dict[PropertyKind, list[Property]] = {kind: [] for kind in PropertyKind}
        for prop in properties:
            grouped[prop.kind].append(prop)
        return grouped

    def _parse_instant(self, prop: Property, default_tzid: Optional[str] = None) -> _Instant:
        """Decode a DTSTART/DTEND property into epoch millis and its timezone.

        ``VALUE=DATE`` means midnight UTC and an all-day instant. A ``Z``
        suffix means UTC regardless of TZID. Otherwise the TZID, then
        ``default_tzid``, names the zone of the local time; with neither the
        value is read as UTC.
        """
        value = prop.value.strip()

        if (prop.get_parameter("VALUE") or "").upper() == "DATE":
            day = decode_date(value)
            midnight = datetime.combine(day, time.min, tzinfo=timezone.utc)
            return _Instant(_to_millis(midnight), UTC_TZID, True)

        moment = decode_datetime(value)
        if moment.tzinfo is not None:
            return _Instant(_to_millis(moment), UTC_TZID, False)

        tzid = prop.get_parameter("TZID")
        if tzid is None:
            tzid = default_tzid
        if tzid is None or tzid == UTC_TZID:
            return _Instant(_to_millis(moment.replace(tzinfo=timezone.utc)), UTC_TZID, False)

        try:
            instant = local_to_utc(self.resolver, tzid, moment)
        except TimezoneError as e:
            raise UnknownTimezoneError(
                f"Cannot resolve TZID {tzid!r} on {prop.name}: {e}", tzid
            ) from e
        return _Instant(_to_millis(instant), tzid, False)

    def _compute_duration(
        self, start: _Instant, grouped: dict[PropertyKind, list[Property]]
    ) -> str:
        """Pick the explicit DURATION, else derive one from DTEND."""
        for prop in grouped[PropertyKind.DURATION]:
            if prop.value.strip():
                return prop.value

        dtend_props = grouped[PropertyKind.DTEND]
        if not dtend_props:
            raise MissingRequiredPropertyError(
                "Event has neither DURATION nor DTEND", PropertyKind.DURATION.value
            )

        # DTEND's zone only shapes the duration, never the record's timezone
        end = self._parse_instant(dtend_props[0], default_tzid=start.timezone)
        seconds = (end.millis - start.millis) // MILLIS_PER_SECOND
        if seconds < 0:
            logger.warning(f"DTEND precedes DTSTART by {-seconds}s")

        if start.all_day:
            days = max(1, seconds // SECONDS_PER_DAY)
            return f"P{days}D"
        return f"P{seconds}S"

    @staticmethod
    def _merge_rules(props: list[Property]) -> Optional[str]:
        if not props:
            return None
        return "\n".join(prop.value for prop in props)

    def _encode_dates(self, props: list[Property]) -> Optional[str]:
        if not props:
            return None
        return "\n".join(self._encode_date_property(prop) for prop in props)

    def _encode_date_property(self, prop: Property) -> str:
        if self.rdate_encoding is RDateEncoding.PARAMETERS:
            if not prop.parameters:
                return prop.value
            # Drop the leading "NAME;" from the rendered content line
            return prop.to_ical()[len(prop.name) + 1 :]

        tzid = prop.get_parameter("TZID")
        if tzid is not None:
            return f"{tzid};{prop.value}"
        return prop.value


def normalize(
    component: Component,
    resolver: Optional[TimezoneResolver] = None,
    rdate_encoding: Union[RDateEncoding, str] = RDateEncoding.LEGACY,
) -> NormalizedRecurrence:
    """Normalize one event component with a throwaway ``RecurrenceNormalizer``."""
    return RecurrenceNormalizer(resolver, rdate_encoding).normalize(component)


def normalize_calendar(
    text: str,
    resolver: Optional[TimezoneResolver] = None,
    rdate_encoding: Union[RDateEncoding, str] = RDateEncoding.LEGACY,
    skip_invalid: bool = False,
) -> list[tuple[Optional[str], NormalizedRecurrence]]:
    """Parse calendar text and normalize every VEVENT in it.

    Args:
        text: Calendar content lines
        resolver: Timezone offset lookup
        rdate_encoding: Flattening policy for RDATE/EXDATE occurrences
        skip_invalid: Log and skip events that fail to normalize instead of raising

    Returns:
        ``(uid, record)`` pairs in document order; ``uid`` is None when the
        event has no UID property.

    Raises:
        ICSFormatError: If the text is malformed, or an event fails and
            ``skip_invalid`` is False.
    """
    normalizer = RecurrenceNormalizer(resolver, rdate_encoding)
    return normalizer.normalize_all(iter_events(parse(text)), skip_invalid=skip_invalid)


def _decode_date_entry(name: str, entry: str) -> Property:
    """Rebuild one RDATE/EXDATE property from its encoded form."""
    if ":" in entry:
        return parse_line(f"{name};{entry}")
    if ";" in entry:
        tzid, values = entry.split(";", 1)
        return Property(name=name, parameters={"TZID": tzid}, value=values)
    return Property(name=name, value=entry)


def build_component(
    record: NormalizedRecurrence,
    resolver: Optional[TimezoneResolver] = None,
    name: str = "VEVENT",
) -> Component:
    """Build an event component carrying the recurrence described by ``record``.

    The component holds DTSTART, DURATION, one RRULE/EXRULE per rule line and
    the RDATE/EXDATE properties decoded from either encoding. Normalizing it
    again yields the same record.

    Raises:
        UnknownTimezoneError: If the record's timezone cannot be resolved.
    """
    resolver = resolver if resolver is not None else get_timezone_resolver()
    component = Component(name)
    start = _from_millis(record.dtstart_millis)

    if record.all_day:
        dtstart = Property(
            name="DTSTART", parameters={"VALUE": "DATE"}, value=_format_date(start)
        )
    elif record.timezone == UTC_TZID:
        dtstart = Property(name="DTSTART", value=_format_local_datetime(start) + "Z")
    else:
        try:
            local = utc_to_local(resolver, record.timezone, start)
        except TimezoneError as e:
            raise UnknownTimezoneError(
                f"Cannot resolve timezone {record.timezone!r}: {e}", record.timezone
            ) from e
        dtstart = Property(
            name="DTSTART",
            parameters={"TZID": record.timezone},
            value=_format_local_datetime(local),
        )

    component.add_property(dtstart)
    component.add_property(Property(name="DURATION", value=record.duration))

    for kind, text in (
        (PropertyKind.RRULE, record.rrule),
        (PropertyKind.RDATE, record.rdate),
        (PropertyKind.EXRULE, record.exrule),
        (PropertyKind.EXDATE, record.exdate),
    ):
        if text is None:
            continue
        for entry in text.split("\n"):
            if kind in (PropertyKind.RDATE, PropertyKind.EXDATE):
                component.add_property(_decode_date_entry(kind.value, entry))
            else:
                component.add_property(Property(name=kind.value, value=entry))

    return component
