"""Base certificate source abstract class for all filesystem sources."""

from abc import ABC, abstractmethod
import logging
import threading
from typing import Optional

from ..certs.models import ScanBatch


class CertificateSource(ABC):
    """Abstract base class for certificate sources."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize base source.

        Args:
            logger: Logger instance, a child logger is derived per source class
        """
        logger = logger or logging.getLogger(__name__)
        self.logger = logger.getChild(self.__class__.__name__)

    @abstractmethod
    def load(self, path: str, cancel: Optional[threading.Event] = None) -> ScanBatch:
        """
        Load every certificate reachable from *path*.

        Args:
            path: File or directory to load
            cancel: Cooperative cancellation signal, checked before each path

        Returns:
            ScanBatch: Records and per-path errors

        Note:
            Per-path failures are returned as errors in the batch, never raised.
        """
        pass

    @staticmethod
    def _cancelled(cancel: Optional[threading.Event]) -> bool:
        """Return True when the cancellation signal has been set."""
        return cancel is not None and cancel.is_set()
