"""Settings management using Pydantic for type validation and configuration."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

from calendarcore.ics.models import RDateEncoding
from calendarcore.timezone import BaseTimezoneResolver, create_timezone_resolver

ENV_PREFIX = "CALENDARCORE_"


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    # Console Logging
    console_enabled: bool = Field(default=True, description="Enable console logging")
    console_level: str = Field(
        default="INFO",
        description="Console log level: DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL",
    )
    console_colors: bool = Field(
        default=True, description="Enable colored console output (auto-detected)"
    )

    # File Logging
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_level: str = Field(default="DEBUG", description="File log level")
    file_directory: Optional[str] = Field(
        default=None, description="Custom log directory (defaults to data_dir/logs)"
    )
    file_prefix: str = Field(default="calendarcore", description="Log file prefix")
    max_log_files: int = Field(default=5, description="Number of rotated log files to keep")
    include_function_names: bool = Field(
        default=True, description="Include function names and line numbers in file logs"
    )

    # Third-party Libraries
    third_party_level: str = Field(
        default="WARNING", description="Log level for third-party libraries"
    )


class CalendarCoreSettings(BaseSettings):
    """Application settings with environment variable and YAML support.

    Precedence: explicit arguments > environment > YAML file > defaults.
    """

    # Private attributes
    _explicit_args: set = PrivateAttr(default_factory=set)
    _env_vars_set: set = PrivateAttr(default_factory=set)
    _loaded_config_file: Optional[Path] = PrivateAttr(default=None)

    # Timezone Resolution
    timezone_backend: str = Field(
        default="zoneinfo", description="Timezone database backend: zoneinfo or pytz"
    )
    timezone_aliases: dict[str, str] = Field(
        default_factory=dict, description="Extra TZID aliases mapped to IANA identifiers"
    )

    # Normalization
    rdate_encoding: RDateEncoding = Field(
        default=RDateEncoding.LEGACY, description="RDATE/EXDATE encoding: legacy or parameters"
    )
    skip_invalid_events: bool = Field(
        default=False, description="Skip events that fail to normalize instead of aborting"
    )

    # File Paths
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config" / "calendarcore")
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".local" / "share" / "calendarcore"
    )

    # Logging Configuration
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings, description="Logging settings"
    )

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )

    def __init__(self, config_path: Optional[Path] = None, **kwargs: Any) -> None:
        # Track which environment variables are set before calling parent
        env_vars_set = {
            key[len(ENV_PREFIX) :].lower() for key in os.environ if key.upper().startswith(ENV_PREFIX)
        }

        super().__init__(**kwargs)

        # Track which arguments were explicitly provided
        self._explicit_args = set(kwargs.keys())
        self._env_vars_set = env_vars_set

        self._load_yaml_config(Path(config_path) if config_path else None)

    def _find_config_file(self) -> Optional[Path]:
        """Find config file, checking the working directory first, then user home."""
        project_config = Path.cwd() / "config" / "config.yaml"
        if project_config.exists():
            return project_config

        user_config = self.config_dir / "config.yaml"
        if user_config.exists():
            return user_config

        return None

    def _is_overridden(self, setting: str) -> bool:
        return setting in self._explicit_args or setting in self._env_vars_set

    def _load_timezone_config(self, config_data: dict) -> None:
        """Load timezone resolution settings from YAML data."""
        if "timezone" not in config_data:
            return

        timezone_config = config_data["timezone"] or {}
        if "backend" in timezone_config and not self._is_overridden("timezone_backend"):
            self.timezone_backend = timezone_config["backend"]
        if "aliases" in timezone_config and not self._is_overridden("timezone_aliases"):
            self.timezone_aliases = dict(timezone_config["aliases"] or {})

    def _load_normalizer_config(self, config_data: dict) -> None:
        """Load normalization settings from YAML data."""
        if "normalizer" not in config_data:
            return

        normalizer_config = config_data["normalizer"] or {}
        for setting in ["rdate_encoding", "skip_invalid_events"]:
            if setting in normalizer_config and not self._is_overridden(setting):
                setattr(self, setting, normalizer_config[setting])

    def _load_logging_config(self, config_data: dict) -> None:
        """Load logging configuration from YAML data."""
        if "logging" not in config_data or self._is_overridden("logging"):
            return

        logging_config = config_data["logging"] or {}
        for setting in LoggingSettings.model_fields:
            # Nested env vars look like CALENDARCORE_LOGGING__CONSOLE_LEVEL
            if setting in logging_config and not self._is_overridden(f"logging__{setting}"):
                setattr(self.logging, setting, logging_config[setting])

    def _load_yaml_config(self, config_file: Optional[Path] = None) -> None:
        """Load configuration from YAML file if it exists."""
        config_file = config_file or self._find_config_file()
        if not config_file:
            return

        try:
            with config_file.open() as f:
                config_data = yaml.safe_load(f)

            if not config_data:
                return

            # Load configuration in logical sections
            self._load_timezone_config(config_data)
            self._load_normalizer_config(config_data)
            self._load_logging_config(config_data)
            self._loaded_config_file = config_file

        except Exception as e:
            # Don't fail if YAML loading fails, just continue with defaults/env vars
            logging.warning(f"Could not load YAML config from {config_file}: {e}")

    @property
    def loaded_config_file(self) -> Optional[Path]:
        """YAML file the settings were read from, if any."""
        return self._loaded_config_file

    @property
    def log_directory(self) -> Path:
        """Directory for log files."""
        if self.logging.file_directory:
            return Path(self.logging.file_directory)
        return self.data_dir / "logs"

    def create_timezone_resolver(self) -> BaseTimezoneResolver:
        """Create the timezone resolver these settings describe."""
        return create_timezone_resolver(self.timezone_backend, self.timezone_aliases)


# Global settings management
_settings_instance: Optional[CalendarCoreSettings] = None


def get_settings() -> CalendarCoreSettings:
    """Get the global settings instance, creating it lazily if needed."""
    if globals()["_settings_instance"] is None:
        globals()["_settings_instance"] = CalendarCoreSettings()
    return globals()["_settings_instance"]


def reset_settings() -> None:
    """Reset the global settings instance (primarily for testing)."""
    globals()["_settings_instance"] = None
