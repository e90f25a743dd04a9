"""Settings for the deadman receiver.

Values come from the environment (same variable names as the original Go
receiver), optionally layered over a YAML file:

    EXPIRE_DURATION=30m INTERNAL_CHK_INTERVAL=1m SLACK_TOKEN=xoxb-... deadman serve
    deadman serve --config deadman.yaml

Durations use Go syntax ("1h", "1h30m", "90s", "500ms") or a bare number
of seconds.
"""

import math
import os
import re
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ValidationError, field_validator


class ConfigError(ValueError):
    """Configuration could not be loaded or is invalid."""


# env var -> Settings field
ENV_VARS: dict[str, str] = {
    "EXPIRE_DURATION": "expire_duration",
    "INTERNAL_CHK_INTERVAL": "check_interval",
    "NOTIFY_TIMEOUT": "notify_timeout",
    "DEBUG": "debug",
    "HOST": "host",
    "PORT": "port",
    "PD_TOKEN": "pagerduty_token",
    "SLACK_TOKEN": "slack_token",
    "SLACK_CHANNEL": "slack_channel",
}

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

# Largest duration Go's time.Duration can hold (about 292 years)
MAX_DURATION = (2**63 - 1) * 1e-9


def parse_duration(value: str | int | float) -> float:
    """Parse a Go-style duration string into seconds."""
    if isinstance(value, bool):
        raise ConfigError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return _bounded(float(value), value)

    text = str(value).strip()
    if not text:
        raise ConfigError("Invalid duration: empty string")

    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        return _bounded(seconds, value)

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if not match:
            raise ConfigError(f"Invalid duration: {value!r}")
        number, unit = match.groups()
        total += float(number) * _UNITS[unit]
        pos = match.end()

    if pos == 0:
        raise ConfigError(f"Invalid duration: {value!r}")
    return _bounded(sign * total, value)


def _bounded(seconds: float, value: Any) -> float:
    if not math.isfinite(seconds):
        raise ConfigError(f"Invalid duration: {value!r}")
    if abs(seconds) > MAX_DURATION:
        raise ConfigError(f"Duration out of range: {value!r}")
    return seconds


def format_duration(seconds: float) -> str:
    """Render seconds back as a compact Go-style duration."""
    if seconds == 0:
        return "0s"
    sign = "-" if seconds < 0 else ""
    remaining = abs(seconds)
    hours, remaining = divmod(remaining, 3600)
    minutes, remaining = divmod(remaining, 60)
    parts = []
    if hours:
        parts.append(f"{int(hours)}h")
    if minutes:
        parts.append(f"{int(minutes)}m")
    if remaining:
        parts.append(f"{remaining:g}s")
    return sign + "".join(parts)


class Settings(BaseModel):
    """Effective receiver configuration. Durations are in seconds."""
    expire_duration: float = 3600.0
    check_interval: float = 60.0
    notify_timeout: float = 30.0
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8080

    # Notifiers - an empty credential disables the transport
    pagerduty_token: str = ""
    slack_token: str = ""
    slack_channel: str = "general"

    @field_validator("expire_duration", "check_interval", "notify_timeout", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> float:
        return parse_duration(value)

    @field_validator("check_interval", "notify_timeout")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("port")
    @classmethod
    def _valid_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("must be between 1 and 65535")
        return value

    @property
    def enabled_notifiers(self) -> list[str]:
        enabled = []
        if self.slack_token:
            enabled.append("slack")
        if self.pagerduty_token:
            enabled.append("pagerduty")
        return enabled


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text())
    except OSError as e:
        raise ConfigError(f"Unable to read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Unable to parse config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_settings(
    environ: Mapping[str, str] | None = None,
    config_file: Path | None = None,
    **overrides: Any,
) -> Settings:
    """Build Settings from a config file, the environment and overrides.

    Precedence (highest first): explicit overrides, environment, file.
    Raises ConfigError on any parse or validation failure.
    """
    environ = os.environ if environ is None else environ

    values: dict[str, Any] = {}
    if config_file is not None:
        values.update(_read_config_file(Path(config_file)))

    for env_var, field_name in ENV_VARS.items():
        if env_var in environ:
            values[field_name] = environ[env_var]

    values.update({k: v for k, v in overrides.items() if v is not None})

    unknown = set(values) - set(Settings.model_fields)
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")

    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
