"""Shared pytest configuration and fixtures."""

import pytest
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from x509_watch.utils.logger import setup_logger


# Fixed reference time so validity windows are deterministic
NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def _name(common_name):
    if common_name is None:
        return x509.Name([x509.NameAttribute(NameOID.ORGANIZATION_NAME, "x509-watch tests")])
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


def make_certificate(
    common_name="example.com",
    issuer="Test CA",
    not_before=None,
    not_after=None,
):
    """
    Build a self-signed style certificate with the given identity and window.

    The subject and issuer names are set independently; the signature is
    made with a throwaway EC key, no chain validation happens anywhere.
    """
    key = ec.generate_private_key(ec.SECP256R1())
    not_before = not_before or NOW - timedelta(days=1)
    not_after = not_after or NOW + timedelta(days=365)

    return (
        x509.CertificateBuilder()
        .subject_name(_name(common_name))
        .issuer_name(_name(issuer))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )


def to_pem(cert):
    return cert.public_bytes(serialization.Encoding.PEM)


def to_der(cert):
    return cert.public_bytes(serialization.Encoding.DER)


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test", "debug")


@pytest.fixture
def now():
    """Reference time used by certificate fixtures."""
    return NOW


@pytest.fixture
def cert_factory():
    """Return the certificate builder helper."""
    return make_certificate


@pytest.fixture
def pem_file(tmp_path):
    """Write a PEM file built from one or more certificates and return its path."""
    def _write(name, *certs):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"".join(to_pem(cert) for cert in certs))
        return str(path)
    return _write
