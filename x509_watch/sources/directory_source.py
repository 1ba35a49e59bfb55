"""Directory-tree certificate source."""

import logging
import os
import stat
import threading
from typing import List, Optional, Set, Tuple

from ..certs.models import CertificateError, CertificateRecord, ErrorKind, ScanBatch
from .base import CertificateSource
from .file_source import FileSource


class DirectorySource(CertificateSource):
    """
    Source walking a directory tree and loading every regular file in it.

    One unreadable entry never aborts the walk: it is reported as a read
    error and its siblings are still visited. Symbolic links are followed;
    a directory reached twice through links is only scanned once.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        file_source: Optional[FileSource] = None
    ):
        """
        Initialize directory source.

        Args:
            logger: Logger instance
            file_source: Source used for each regular file found
        """
        super().__init__(logger)
        self.file_source = file_source or FileSource(logger)

    def load(self, path: str, cancel: Optional[threading.Event] = None) -> ScanBatch:
        """
        Walk *path* and load every regular file below it.

        Args:
            path: Root of the tree (a plain file is loaded as-is)
            cancel: Cooperative cancellation signal, checked before every path

        Returns:
            ScanBatch: Merged records and errors of the whole tree
        """
        records: List[CertificateRecord] = []
        errors: List[CertificateError] = []
        pending: List[str] = [path]
        visited_dirs: Set[Tuple[int, int]] = set()

        while pending:
            current = pending.pop()

            if self._cancelled(cancel):
                self.logger.debug(f"Scan cancelled before {current}")
                errors.append(CertificateError(current, ErrorKind.UNKNOWN, "scan cancelled"))
                break

            try:
                info = os.stat(current)
            except OSError as e:
                errors.append(CertificateError(current, ErrorKind.READ, str(e)))
                continue

            if stat.S_ISDIR(info.st_mode):
                key = (info.st_dev, info.st_ino)
                if key in visited_dirs:
                    self.logger.debug(f"Skipping already visited directory {current}")
                    continue
                visited_dirs.add(key)

                self.logger.debug(f"Descending into directory {current}")
                try:
                    with os.scandir(current) as entries:
                        children = [entry.path for entry in entries]
                except OSError as e:
                    errors.append(CertificateError(current, ErrorKind.READ, str(e)))
                    continue

                # Reversed so that pop() visits entries in name order
                pending.extend(sorted(children, reverse=True))
                continue

            if not stat.S_ISREG(info.st_mode):
                self.logger.debug(f"Skipping non-regular file {current}")
                continue

            self.logger.debug(f"Trying file {current}")
            result = self.file_source.load(current, cancel)
            records.extend(result.records)
            errors.extend(result.errors)

        return ScanBatch(records=records, errors=errors)
