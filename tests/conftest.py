"""Shared fixtures for calendarcore tests."""

import logging
import os
from datetime import datetime
from pathlib import Path

import pytest

from calendarcore.config.settings import reset_settings
from calendarcore.timezone import TimezoneNotFoundError, ZoneInfoTimezoneResolver
from calendarcore.utils.logging import ROOT_LOGGER_NAME, THIRD_PARTY_LOGGERS


class FixedOffsetResolver:
    """Timezone resolver with one constant offset per TZID.

    Records every lookup so tests can assert how the resolver was consulted.
    """

    def __init__(self, offsets: dict[str, int]) -> None:
        self.offsets = dict(offsets)
        self.calls: list[tuple[str, datetime]] = []

    def offset_for(self, tzid: str, instant: datetime) -> int:
        self.calls.append((tzid, instant))
        try:
            return self.offsets[tzid]
        except KeyError:
            raise TimezoneNotFoundError(f"Unknown timezone {tzid!r}", tzid) from None


@pytest.fixture
def fixed_resolver() -> FixedOffsetResolver:
    """Resolver with UTC+2 and UTC-5 test zones."""
    return FixedOffsetResolver({"Test/Plus2": 7200, "Test/Minus5": -18000})


@pytest.fixture(scope="session")
def zoneinfo_resolver() -> ZoneInfoTimezoneResolver:
    """Real tz database resolver for the reference scenarios."""
    return ZoneInfoTimezoneResolver()


@pytest.fixture(autouse=True)
def clean_settings():
    """Clean up global settings state before and after tests."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers installed by setup_logging so tests stay independent."""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    for lib in THIRD_PARTY_LOGGERS:
        logging.getLogger(lib).setLevel(logging.NOTSET)


@pytest.fixture
def isolated_env(monkeypatch, tmp_path) -> Path:
    """Run in an empty directory with no CALENDARCORE_* variables and a fake home."""
    for key in list(os.environ):
        if key.upper().startswith("CALENDARCORE_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    return tmp_path
