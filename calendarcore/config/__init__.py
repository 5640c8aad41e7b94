"""Configuration management package."""

from .settings import CalendarCoreSettings, LoggingSettings, get_settings, reset_settings

__all__ = ["CalendarCoreSettings", "LoggingSettings", "get_settings", "reset_settings"]
