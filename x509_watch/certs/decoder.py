"""Decode PEM bundles and raw DER files into certificate records."""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional

from cryptography import x509
from cryptography.x509.oid import NameOID

from .models import CertificateRecord, ErrorKind, ScanBatch

# BEGIN and END labels must match; labels never contain a hyphen (RFC 7468).
PEM_BLOCK_RE = re.compile(
    rb"-----BEGIN ([^\r\n-]+)-----(.*?)-----END \1-----",
    re.DOTALL,
)

CERTIFICATE_LABEL = "CERTIFICATE"


@dataclass(frozen=True)
class PemBlock:
    """One marker-delimited block found in a text file."""

    label: str
    body: bytes

    def payload(self) -> bytes:
        """
        Base64-decode the block body.

        RFC 1421 style headers ("Proc-Type: ...") ahead of the first blank
        line are skipped.

        Raises:
            binascii.Error: If the body is not valid base64
        """
        lines = [line.strip() for line in self.body.strip().splitlines()]
        if lines and b":" in lines[0]:
            try:
                lines = lines[lines.index(b"") + 1:]
            except ValueError:
                lines = [line for line in lines if b":" not in line]
        return base64.b64decode(b"".join(lines), validate=True)


def iter_pem_blocks(data: bytes) -> Iterator[PemBlock]:
    """Yield every PEM block in *data*, in file order."""
    for match in PEM_BLOCK_RE.finditer(data):
        label = match.group(1).decode("ascii", errors="replace").strip()
        yield PemBlock(label=label, body=match.group(2))


def _common_name(name: x509.Name) -> str:
    attributes = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attributes:
        return ""
    value = attributes[0].value
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)


def parse_der_certificate(der: bytes, path: str) -> CertificateRecord:
    """
    Parse one DER-encoded certificate into a record.

    Args:
        der: Raw DER bytes
        path: File the bytes came from, stored on the record

    Returns:
        CertificateRecord: Identity fields and validity window

    Raises:
        ValueError: If the bytes are not a well-formed X.509 certificate
    """
    cert = x509.load_der_x509_certificate(der)
    return CertificateRecord(
        file_path=path,
        common_name=_common_name(cert.subject),
        issuer=_common_name(cert.issuer),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
    )


def decode_certificates(
    path: str,
    data: bytes,
    logger: Optional[logging.Logger] = None
) -> ScanBatch:
    """
    Decode the full content of one file.

    PEM blocks are tried first. A malformed CERTIFICATE block is reported
    as a single parse error for the file while the well-formed blocks of
    the same bundle are still returned. Content without any PEM block is
    parsed as a single DER certificate.

    Args:
        path: File path, used for records and errors
        data: File content
        logger: Optional logger for decode diagnostics

    Returns:
        ScanBatch: Records and errors for this file
    """
    logger = logger or logging.getLogger(__name__)

    if not data:
        return ScanBatch.failed(path, ErrorKind.PEM, "empty file")

    records: List[CertificateRecord] = []
    failures: List[str] = []
    blocks_seen = 0
    certificate_blocks = 0

    for block in iter_pem_blocks(data):
        blocks_seen += 1
        if block.label != CERTIFICATE_LABEL:
            logger.debug(f"Ignoring PEM block type {block.label} in {path}")
            continue

        certificate_blocks += 1
        try:
            records.append(parse_der_certificate(block.payload(), path))
        except binascii.Error as e:
            failures.append(f"block {certificate_blocks}: invalid base64: {e}")
        except Exception as e:
            failures.append(f"block {certificate_blocks}: {e}")

    if blocks_seen:
        batch = ScanBatch(records=records)
        if failures:
            cause = failures[0]
            if len(failures) > 1:
                cause += f" ({len(failures)} of {certificate_blocks} certificate blocks failed)"
            batch = batch + ScanBatch.failed(path, ErrorKind.PARSE, cause)
        elif not certificate_blocks:
            batch = batch + ScanBatch.failed(path, ErrorKind.PEM, "no certificate block found")
        return batch

    logger.debug(f"No PEM blocks found in {path}, trying DER parse")

    try:
        return ScanBatch(records=(parse_der_certificate(data, path),))
    except Exception as e:
        return ScanBatch.failed(
            path,
            ErrorKind.PEM,
            f"neither recognized textual nor raw binary encoding: {e}",
        )
