"""Abstract base class for ScanEvent data access objects (DAOs).

Scan events are append-only: the interface has no update or delete operation.
Besides inserting events it answers the three questions the scan pipeline asks
of its history:

    - How many times did this IP scan this QR code recently? (rate limiting)
    - Did this fingerprint scan this QR code since a given moment? (uniqueness)
    - Which events were recorded for this QR code in a time range? (statistics)
"""

from abc import ABC, abstractmethod
from datetime import datetime

from qrhub.models import ScanEventModel


class ScanEventBaseDAO(ABC):
    """Interface for ScanEvent data access objects (DAOs).

    Methods:
        create(event: ScanEventModel, **kwargs) -> ScanEventBaseDAO:
            Persist a new scan event.
            Raises ScanEventAlreadyExistsError if the id is taken.

        get(scan_id: str, **kwargs) -> ScanEventModel:
            Retrieve a scan event by id.
            Raises ScanEventNotFoundError if it doesn't exist.

        count_recent(qr_code_id: str, ip: str, since: datetime, **kwargs) -> int:
            Count scans of a QR code from an IP at or after `since`.

        exists_since(qr_code_id: str, fingerprint: str, since: datetime, **kwargs) -> bool:
            Return True if the fingerprint scanned the QR code at or after `since`.

        find_by_qr_code(qr_code_id: str, since: datetime | None, until: datetime | None, **kwargs) -> list[ScanEventModel]:
            Return scan events of a QR code ordered by scan time.

    All methods raise DataStoreError on connection or read/write failure.
    """

    @abstractmethod
    def create(self, event: ScanEventModel, **kwargs) -> 'ScanEventBaseDAO':
        """Persist a new scan event.

        Args:
            event (ScanEventModel):
                Fully derived scan event.

            **kwargs:
                Additional keyword arguments, used by data store.

        Returns:
            ScanEventBaseDAO: self (for method chaining)

        Raises:
            ScanEventAlreadyExistsError:
                If a scan event with the same id already exists.

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def get(self, scan_id: str, **kwargs) -> ScanEventModel:
        pass

    @abstractmethod
    def count_recent(self, qr_code_id: str, ip: str, since: datetime, **kwargs) -> int:
        pass

    @abstractmethod
    def exists_since(self, qr_code_id: str, fingerprint: str, since: datetime, **kwargs) -> bool:
        pass

    @abstractmethod
    def find_by_qr_code(
        self,
        qr_code_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
        **kwargs,
    ) -> list[ScanEventModel]:
        pass
