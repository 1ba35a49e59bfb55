"""Prometheus metrics aggregation for certificate scan batches."""

import logging
import platform
import threading
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterator, Optional, Tuple

from prometheus_client import CollectorRegistry, Gauge
from prometheus_client.core import GaugeMetricFamily

from ..certs.models import CertificateRecord, ScanBatch
from .base import MetricsPublisher

CERT_LABELS = ["common_name", "issuer", "filepath"]

EXPIRED_BUCKET = "expired"

# Ordered from most to least urgent, first match wins
EXPIRY_THRESHOLDS = (
    ("<1d", timedelta(days=1)),
    ("<7d", timedelta(days=7)),
    ("<30d", timedelta(days=30)),
    ("<90d", timedelta(days=90)),
)

CATCH_ALL_BUCKET = ">=90d"

BUCKET_LABELS = (EXPIRED_BUCKET,) + tuple(label for label, _ in EXPIRY_THRESHOLDS) + (CATCH_ALL_BUCKET,)


def classify_expiry_bucket(remaining: timedelta) -> str:
    """
    Map remaining validity to its expiry bucket label.

    Args:
        remaining: Time left until not_after (negative once expired)

    Returns:
        str: One of BUCKET_LABELS
    """
    if remaining <= timedelta(0):
        return EXPIRED_BUCKET
    for label, upper_bound in EXPIRY_THRESHOLDS:
        if remaining < upper_bound:
            return label
    return CATCH_ALL_BUCKET


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CertificateSeries:
    """Per-certificate values computed against one reference time."""

    labels: Tuple[str, str, str]
    not_before: float
    not_after: float
    expired: float
    expires_in_seconds: float
    valid_since_seconds: float


@dataclass(frozen=True)
class MetricsSnapshot:
    """Complete, immutable set of values exported between two publishes."""

    valid_certs: int = 0
    certificates: Tuple[CertificateSeries, ...] = ()
    buckets: Tuple[Tuple[str, int], ...] = ()
    errors_by_kind: Tuple[Tuple[str, int], ...] = ()
    error_files: Tuple[Tuple[str, str], ...] = ()


def build_snapshot(
    batch: ScanBatch,
    now: datetime,
    per_cert_metrics: bool = True
) -> MetricsSnapshot:
    """
    Compute the snapshot for one batch.

    Args:
        batch: Records and errors of one scan cycle
        now: Reference time shared by every record of the batch
        per_cert_metrics: Whether identity-labelled series are included

    Returns:
        MetricsSnapshot: Values to export until the next publish
    """
    valid = 0
    buckets: Dict[str, int] = {label: 0 for label in BUCKET_LABELS}
    certificates: Dict[Tuple[str, str, str], CertificateSeries] = {}

    for record in batch.records:
        expired = record.is_expired(now)
        expires_in = record.expires_in_seconds(now)

        if not expired:
            valid += 1
        buckets[classify_expiry_bucket(timedelta(seconds=expires_in))] += 1

        if per_cert_metrics:
            labels = (record.common_name, record.issuer, record.file_path)
            # Identical label sets collapse into one series, last record wins
            certificates[labels] = _certificate_series(record, labels, now, expired, expires_in)

    errors_by_kind = Counter(error.kind.value for error in batch.errors)

    error_files: Tuple[Tuple[str, str], ...] = ()
    if per_cert_metrics:
        error_files = tuple(sorted({(error.path, error.kind.value) for error in batch.errors}))

    return MetricsSnapshot(
        valid_certs=valid,
        certificates=tuple(certificates.values()),
        buckets=tuple((label, buckets[label]) for label in BUCKET_LABELS),
        errors_by_kind=tuple(sorted(errors_by_kind.items())),
        error_files=error_files,
    )


def _certificate_series(
    record: CertificateRecord,
    labels: Tuple[str, str, str],
    now: datetime,
    expired: bool,
    expires_in: float
) -> CertificateSeries:
    return CertificateSeries(
        labels=labels,
        not_before=float(int(record.not_before.timestamp())),
        not_after=float(int(record.not_after.timestamp())),
        expired=1.0 if expired else 0.0,
        expires_in_seconds=expires_in,
        valid_since_seconds=record.valid_since_seconds(now),
    )


class PrometheusPublisher(MetricsPublisher):
    """
    Publishes scan batches as Prometheus metrics.

    The exported values live in one immutable MetricsSnapshot. Each publish
    builds a new snapshot and swaps the reference under a lock, so a scrape
    sees either the previous snapshot or the new one as a whole and series
    of entities missing from the latest batch vanish immediately.
    """

    def __init__(
        self,
        registry: CollectorRegistry,
        clock: Optional[Callable[[], datetime]] = None,
        per_cert_metrics: bool = True,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize publisher and register its collector.

        Args:
            registry: Registry the metrics are exposed through
            clock: Returns the reference time, defaults to UTC wall clock
            per_cert_metrics: Emit identity-labelled per-certificate series
            logger: Optional logger instance
        """
        self.registry = registry
        self.clock = clock or utc_now
        self.per_cert_metrics = per_cert_metrics
        self.logger = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._snapshot = MetricsSnapshot()

        registry.register(SnapshotCollector(self))

    @property
    def snapshot(self) -> MetricsSnapshot:
        """Currently exported snapshot."""
        with self._lock:
            return self._snapshot

    def publish(self, batch: ScanBatch) -> None:
        """
        Replace the exported snapshot with one computed from *batch*.

        Args:
            batch: All records and errors of one scan cycle
        """
        now = self.clock()
        snapshot = build_snapshot(batch, now, self.per_cert_metrics)

        with self._lock:
            self._snapshot = snapshot

        self.logger.debug(
            f"Published {len(batch.records)} certificate(s), "
            f"{snapshot.valid_certs} valid, {len(batch.errors)} error(s)"
        )


class SnapshotCollector:
    """Custom collector rendering the publisher's current snapshot."""

    def __init__(self, publisher: PrometheusPublisher):
        self.publisher = publisher

    def describe(self) -> Iterator[GaugeMetricFamily]:
        return iter(self._families(MetricsSnapshot()))

    def collect(self) -> Iterator[GaugeMetricFamily]:
        return iter(self._families(self.publisher.snapshot))

    @staticmethod
    def _families(snapshot: MetricsSnapshot):
        valid = GaugeMetricFamily(
            "x509_valid_certs_total",
            "Number of current valid (non-expired) certificates",
            value=snapshot.valid_certs,
        )

        not_before = GaugeMetricFamily(
            "x509_cert_not_before",
            "Certificate validity start time (unix seconds)",
            labels=CERT_LABELS,
        )
        not_after = GaugeMetricFamily(
            "x509_cert_not_after",
            "Certificate expiry time (unix seconds)",
            labels=CERT_LABELS,
        )
        expired = GaugeMetricFamily(
            "x509_cert_expired",
            "1 if certificate is expired, 0 otherwise",
            labels=CERT_LABELS,
        )
        expires_in = GaugeMetricFamily(
            "x509_cert_expires_in_seconds",
            "Seconds until certificate expiry (negative if expired)",
            labels=CERT_LABELS,
        )
        valid_since = GaugeMetricFamily(
            "x509_cert_valid_since_seconds",
            "Seconds since certificate became valid",
            labels=CERT_LABELS,
        )
        for series in snapshot.certificates:
            labels = list(series.labels)
            not_before.add_metric(labels, series.not_before)
            not_after.add_metric(labels, series.not_after)
            expired.add_metric(labels, series.expired)
            expires_in.add_metric(labels, series.expires_in_seconds)
            valid_since.add_metric(labels, series.valid_since_seconds)

        buckets = GaugeMetricFamily(
            "x509_certs_by_expiry_bucket",
            "Number of certificates per remaining validity range",
            labels=["range"],
        )
        for label, count in snapshot.buckets:
            buckets.add_metric([label], count)

        errors_by_kind = GaugeMetricFamily(
            "x509_cert_errors_total",
            "Number of certificate load errors by type in the last scan",
            labels=["error_type"],
        )
        for kind, count in snapshot.errors_by_kind:
            errors_by_kind.add_metric([kind], count)

        error_files = GaugeMetricFamily(
            "x509_cert_error",
            "1 if an error occurred for this file in the last scan, labelled by error_type",
            labels=["filepath", "error_type"],
        )
        for path, kind in snapshot.error_files:
            error_files.add_metric([path, kind], 1.0)

        return [
            valid,
            not_before,
            not_after,
            expired,
            expires_in,
            valid_since,
            buckets,
            errors_by_kind,
            error_files,
        ]


def set_build_info(
    registry: CollectorRegistry,
    version: str,
    revision: str,
    platform_name: Optional[str] = None
) -> Gauge:
    """
    Register and set x509_exporter_build_info. Call once at startup.

    Args:
        registry: Registry to register the gauge in
        version: Exporter version
        revision: Source revision the exporter was built from
        platform_name: Runtime platform, defaults to the interpreter and OS

    Returns:
        Gauge: The registered build info gauge
    """
    if platform_name is None:
        platform_name = f"python{platform.python_version()} {platform.system().lower()}/{platform.machine()}"

    build_info = Gauge(
        "x509_exporter_build_info",
        "Build info for the x509 exporter",
        ["version", "revision", "platform"],
        registry=registry,
    )
    build_info.labels(version=version, revision=revision, platform=platform_name).set(1.0)
    return build_info
