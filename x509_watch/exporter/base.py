"""Base metrics publisher abstract class."""

from abc import ABC, abstractmethod

from ..certs.models import ScanBatch


class MetricsPublisher(ABC):
    """Sink receiving the complete result of each scan cycle."""

    @abstractmethod
    def publish(self, batch: ScanBatch) -> None:
        """
        Replace the exported state with the content of *batch*.

        Args:
            batch: All records and errors of one scan cycle

        Note:
            Implementations must replace, never accumulate: anything absent
            from *batch* disappears from the exported state.
        """
        pass
