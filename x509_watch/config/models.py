"""Pydantic configuration model for the exporter."""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, Optional, Tuple
import math
import re

DURATION_PART_RE = re.compile(r'(\d+(?:\.\d+)?)(ms|s|m|h)')

DURATION_UNITS = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

# Longest accepted scan interval, one year
MAX_INTERVAL_SECONDS = 365 * 24 * 3600.0

LOG_LEVEL_CHOICES = ("debug", "info", "warn", "warning", "error")
LOG_FORMAT_CHOICES = ("json", "text")


def parse_duration(value: Any) -> float:
    """
    Convert a duration to seconds.

    Accepts numbers (seconds), numeric strings and compound unit strings
    such as "90s", "5m", "1h30m" or "250ms".

    Args:
        value: Duration to convert

    Returns:
        float: Duration in seconds (negative values are preserved)

    Raises:
        ValueError: If the string is not a recognized duration
    """
    if isinstance(value, bool):
        raise ValueError(f'Invalid duration: {value!r}')
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    sign = 1.0
    if text.startswith('-'):
        sign, text = -1.0, text[1:]

    try:
        return sign * float(text)
    except ValueError:
        pass

    if not text or DURATION_PART_RE.sub('', text):
        raise ValueError(f'Invalid duration: {value!r} (expected e.g. "30s", "5m", "1h30m")')

    total = sum(
        float(amount) * DURATION_UNITS[unit]
        for amount, unit in DURATION_PART_RE.findall(text)
    )
    return sign * total


class ExporterConfig(BaseModel):
    """Root configuration model for the exporter."""
    listen_address: str = ":9101"
    cert_file: Optional[str] = None
    cert_dir: Optional[str] = None
    interval: float = Field(default=0.0, ge=0, le=MAX_INTERVAL_SECONDS)  # Seconds, 0 = scan once at startup
    log_level: str = "info"
    log_format: str = "json"
    per_cert_metrics: bool = True

    @field_validator('interval', mode='before')
    @classmethod
    def validate_interval(cls, v: Any) -> float:
        """Accept Go-style duration strings, reject inf and nan."""
        seconds = parse_duration(v)
        if not math.isfinite(seconds):
            raise ValueError(f"interval must be a finite duration, got {v!r}")
        return seconds

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level."""
        level = v.strip().lower()
        if level not in LOG_LEVEL_CHOICES:
            raise ValueError('log_level must be one of: debug, info, warn, error')
        return level

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Check the log output format."""
        fmt = v.strip().lower()
        if fmt not in LOG_FORMAT_CHOICES:
            raise ValueError('log_format must be one of: json, text')
        return fmt

    @field_validator('listen_address')
    @classmethod
    def validate_listen_address(cls, v: str) -> str:
        """Validate host:port format."""
        host, sep, port = v.rpartition(':')
        if not sep or not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError('listen_address must be host:port, e.g. ":9101" or "127.0.0.1:9101"')
        return v

    @model_validator(mode='after')
    def validate_source(self) -> 'ExporterConfig':
        """Ensure exactly one certificate location is configured."""
        if not self.cert_file and not self.cert_dir:
            raise ValueError('either cert_file or cert_dir must be set')
        if self.cert_file and self.cert_dir:
            raise ValueError('only one of cert_file or cert_dir can be set')
        return self

    @property
    def cert_path(self) -> str:
        """Configured file or directory."""
        return self.cert_file or self.cert_dir

    @property
    def listen_host_port(self) -> Tuple[str, int]:
        """Split listen_address, an empty host meaning all interfaces."""
        host, _, port = self.listen_address.rpartition(':')
        return (host.strip('[]') or "0.0.0.0", int(port))
