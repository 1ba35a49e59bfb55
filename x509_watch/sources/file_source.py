"""Single-file certificate source (PEM bundle or DER)."""

import threading
from typing import Optional

from ..certs.decoder import decode_certificates
from ..certs.models import ErrorKind, ScanBatch
from .base import CertificateSource


class FileSource(CertificateSource):
    """Source reading all certificates stored in one file."""

    def load(self, path: str, cancel: Optional[threading.Event] = None) -> ScanBatch:
        """
        Read and decode one file.

        Args:
            path: Certificate file path
            cancel: Cooperative cancellation signal

        Returns:
            ScanBatch: Records decoded from the file, or a single error
        """
        if self._cancelled(cancel):
            return ScanBatch.failed(path, ErrorKind.UNKNOWN, "scan cancelled")

        self.logger.debug(f"Loading certificates from file {path}")

        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            return ScanBatch.failed(path, ErrorKind.READ, str(e))

        return decode_certificates(path, data, self.logger)
