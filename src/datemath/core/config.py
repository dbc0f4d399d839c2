"""
Configuration for the date-math CLI.

Settings are merged from three sources, lowest precedence first:

    1. A TOML file: ``--config PATH``, else ``$DATEMATH_CONFIG``, else
       ``./datemath.toml`` when it exists.
    2. Environment variables: DATEMATH_TODAY, DATEMATH_FORMAT,
       DATEMATH_LOG_LEVEL.
    3. Command line flags (applied by the CLI through ``with_overrides``).

Example datemath.toml:

    [datemath]
    today = "2021-07-02"
    format = "long"
    log_level = "debug"
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from datemath.core.errors import ConfigError


class OutputFormat(StrEnum):
    """How a computed date is printed."""

    ISO = "iso"  # 2022-01-14
    LONG = "long"  # 2022-01-14, week 2, Friday, January


ENV_CONFIG = "DATEMATH_CONFIG"
ENV_TODAY = "DATEMATH_TODAY"
ENV_FORMAT = "DATEMATH_FORMAT"
ENV_LOG_LEVEL = "DATEMATH_LOG_LEVEL"

DEFAULT_CONFIG_FILE = "datemath.toml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Resolved settings for one invocation."""

    today: date | None = None  # None means "ask the system clock"
    output_format: OutputFormat = OutputFormat.ISO
    log_level: str | None = None  # None leaves logging unconfigured

    def resolve_today(self, clock: Callable[[], date] = date.today) -> date:
        """The date used when an expression has no anchor."""
        if self.today is not None:
            return self.today
        return clock()

    def with_overrides(
        self,
        today: str | None = None,
        output_format: str | None = None,
        log_level: str | None = None,
    ) -> Settings:
        """Apply command line values on top of these settings."""
        changes: dict[str, Any] = {}
        if today is not None:
            changes["today"] = parse_today(today, "--today")
        if output_format is not None:
            changes["output_format"] = parse_output_format(output_format, "--format")
        if log_level is not None:
            changes["log_level"] = parse_log_level(log_level, "--verbose")
        return replace(self, **changes)


def parse_today(value: str, source: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise ConfigError(f"{source}: expected a YYYY-MM-DD date, got {value!r}") from e


def parse_output_format(value: str, source: str) -> OutputFormat:
    try:
        return OutputFormat(value.strip().lower())
    except ValueError as e:
        choices = ", ".join(f.value for f in OutputFormat)
        raise ConfigError(f"{source}: unknown format {value!r} (expected one of: {choices})") from e


def parse_log_level(value: str, source: str) -> str:
    level = value.strip().upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"{source}: unknown log level {value!r}")
    return level


def find_config_file(
    config_path: Path | None, environ: Mapping[str, str], cwd: Path
) -> Path | None:
    """Locate the TOML file to read, if any.

    An explicitly requested file (flag or environment) must exist; the
    default ``datemath.toml`` is optional.
    """
    explicit = config_path or (Path(environ[ENV_CONFIG]) if environ.get(ENV_CONFIG) else None)
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigError(f"config file not found: {explicit}")
        return explicit

    default = cwd / DEFAULT_CONFIG_FILE
    return default if default.is_file() else None


def load_config_file(path: Path) -> Settings:
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"{path}: {e}") from e

    section = data.get("datemath", {})
    if not isinstance(section, dict):
        raise ConfigError(f"{path}: [datemath] must be a table")

    settings = Settings()
    if "today" in section:
        settings = replace(settings, today=_toml_date(section["today"], path))
    if "format" in section:
        settings = replace(
            settings, output_format=parse_output_format(str(section["format"]), str(path))
        )
    if "log_level" in section:
        settings = replace(settings, log_level=parse_log_level(str(section["log_level"]), str(path)))
    return settings


def _toml_date(value: Any, path: Path) -> date:
    # TOML has a native local-date type; a quoted string works too
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_today(str(value), str(path))


def load_settings(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    cwd: Path | None = None,
) -> Settings:
    """Load settings from the config file and the environment.

    Args:
        config_path: Explicit TOML file (from ``--config``).
        environ: Environment mapping, defaults to ``os.environ``.
        cwd: Directory searched for ``datemath.toml``, defaults to the
            current working directory.

    Raises:
        ConfigError: If a file or value is invalid.
    """
    env = os.environ if environ is None else environ
    path = find_config_file(config_path, env, cwd or Path.cwd())
    settings = load_config_file(path) if path is not None else Settings()

    if env.get(ENV_TODAY):
        settings = replace(settings, today=parse_today(env[ENV_TODAY], ENV_TODAY))
    if env.get(ENV_FORMAT):
        settings = replace(
            settings, output_format=parse_output_format(env[ENV_FORMAT], ENV_FORMAT)
        )
    if env.get(ENV_LOG_LEVEL):
        settings = replace(settings, log_level=parse_log_level(env[ENV_LOG_LEVEL], ENV_LOG_LEVEL))

    return settings
