"""Certificate value types shared by sources and the metrics exporter."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class ErrorKind(Enum):
    """Classification of a per-path certificate loading failure."""

    READ = "read_error"
    PARSE = "parse_error"
    PEM = "pem_error"
    UNKNOWN = "unknown_error"  # cancellation surfacing through a load


@dataclass(frozen=True)
class CertificateRecord:
    """Identity and validity window of one decoded certificate."""

    file_path: str
    common_name: str
    issuer: str
    not_before: datetime
    not_after: datetime

    def expires_in_seconds(self, now: datetime) -> float:
        """Seconds until expiry, negative once expired."""
        return (self.not_after - now).total_seconds()

    def valid_since_seconds(self, now: datetime) -> float:
        """Seconds since the validity window opened, negative before it."""
        return (now - self.not_before).total_seconds()

    def is_expired(self, now: datetime) -> bool:
        """True strictly after not_after."""
        return now > self.not_after


@dataclass(frozen=True)
class CertificateError:
    """A failure to load certificates from one path."""

    path: str
    kind: ErrorKind
    cause: Optional[str] = None

    def __post_init__(self):
        """Default the cause to the kind's label when none is given."""
        if not self.cause:
            object.__setattr__(self, "cause", self.kind.value)

    def __str__(self) -> str:
        return f"cert error [{self.kind.value}] on {self.path}: {self.cause}"


@dataclass(frozen=True)
class ScanBatch:
    """
    Records and errors produced by one scan cycle.

    Batches from sub-scans of the same cycle are combined with ``+``;
    batches from different cycles are never merged.
    """

    records: Tuple[CertificateRecord, ...] = field(default_factory=tuple)
    errors: Tuple[CertificateError, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "records", tuple(self.records))
        object.__setattr__(self, "errors", tuple(self.errors))

    def __add__(self, other: "ScanBatch") -> "ScanBatch":
        if not isinstance(other, ScanBatch):
            return NotImplemented
        return ScanBatch(self.records + other.records, self.errors + other.errors)

    @classmethod
    def failed(cls, path: str, kind: ErrorKind, cause: Optional[str] = None) -> "ScanBatch":
        """Build a batch holding a single error and no records."""
        return cls(errors=(CertificateError(path, kind, cause),))
