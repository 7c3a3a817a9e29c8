"""Abstract base class for QRCode data access objects (DAOs).

This class establishes a consistent contract for all QRCode DAO implementations,
regardless of the underlying storage mechanism (e.g., Redis, DynamoDB, MongoDB).

Responsibilities:
    - Provide an interface for inserting and retrieving QRCodeModel objects.
    - Apply cached counter increments produced by scan processing.
    - Apply owner lifecycle changes (status toggles, soft delete).
    - Standardize error handling across multiple data store implementations.

Example:
    Typical usage with a datastore-specific implementation:

        >>> from qrhub.models import QRCodeModel
        >>> from qrhub.dao.redis import QRCodeRedisDAO

        >>> dao = QRCodeRedisDAO(...)

        >>> qr_code = QRCodeModel(
        ...     id='qr1',
        ...     business_id='b1',
        ...     website_id='w1',
        ...     name='Menu',
        ...     target_url='https://example.com/menu',
        ...     short_code='abc12345',
        ... )
        >>> dao.insert(qr_code)

        >>> dao.find_by_short_code('ABC12345').target_url
        'https://example.com/menu'
"""

from abc import ABC, abstractmethod
from datetime import datetime

from qrhub.models import QRCodeModel, QRStatus


class QRCodeBaseDAO(ABC):
    """Interface for QRCode data access objects (DAOs).

    Methods:
        insert(qr_code: QRCodeModel, **kwargs) -> QRCodeBaseDAO:
            Insert a new QRCodeModel into the data store.
            Raises QRCodeAlreadyExistsError if the id or short code is taken.

        get(qr_code_id: str, **kwargs) -> QRCodeModel:
            Retrieve a QRCodeModel by id.

        find_by_short_code(short_code: str, **kwargs) -> QRCodeModel:
            Retrieve a QRCodeModel by its case-insensitive short code, whatever its status.

        increment_scans(qr_code_id: str, is_unique: bool, scanned_at: datetime, **kwargs) -> tuple[int, int]:
            Atomically increment cached scan counters.

        set_status(qr_code_id: str, status: QRStatus, **kwargs) -> QRCodeBaseDAO:
            Change the lifecycle status.

        soft_delete(qr_code_id: str, **kwargs) -> QRCodeBaseDAO:
            Mark a QR code as deleted without removing it.

        set_counters(qr_code_id: str, total_scans: int, unique_scans: int, last_scan_at: datetime | None, **kwargs) -> bool:
            Raise cached counters to values recomputed from scan history (never lowers them).

    All methods raise QRCodeNotFoundError for unknown ids/short codes and
    DataStoreError on connection or read/write failure.

    NOTE:
        - There is no hard delete: scan events keep referencing soft-deleted QR codes.
        - Short codes are immutable; no method changes them after insertion.
    """

    @abstractmethod
    def insert(self, qr_code: QRCodeModel, **kwargs) -> 'QRCodeBaseDAO':
        """Insert a new QRCodeModel into the data store.

        Args:
            qr_code (QRCodeModel):
                The QRCodeModel instance to be inserted.

            **kwargs:
                Additional keyword arguments, used by data store.

        Returns:
            QRCodeBaseDAO: self (for method chaining)

        Raises:
            QRCodeAlreadyExistsError:
                If a QRCodeModel with the same id or short code already exists.

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def get(self, qr_code_id: str, **kwargs) -> QRCodeModel:
        """Retrieve a QRCodeModel by its id.

        Raises:
            QRCodeNotFoundError:
                If no QRCodeModel with the given id exists.

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def find_by_short_code(self, short_code: str, **kwargs) -> QRCodeModel:
        """Retrieve a QRCodeModel by its short code (case-insensitive).

        Status filtering is the caller's job: inactive, archived and
        soft-deleted QR codes are returned as well.

        Raises:
            QRCodeNotFoundError:
                If no QRCodeModel with the given short code exists.

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def increment_scans(self, qr_code_id: str, is_unique: bool, scanned_at: datetime, **kwargs) -> tuple[int, int]:
        """Atomically increment the cached scan counters of a QR code.

        Args:
            qr_code_id (str):
                Id of the scanned QR code.

            is_unique (bool):
                If True, unique scans are incremented as well as total scans.

            scanned_at (datetime):
                Time of the scan, stored as the last scan time.

        Returns:
            tuple[int, int]: (total_scans, unique_scans) after the increment.
        """
        pass

    @abstractmethod
    def set_status(self, qr_code_id: str, status: QRStatus, **kwargs) -> 'QRCodeBaseDAO':
        """Change the lifecycle status of a QR code."""
        pass

    @abstractmethod
    def soft_delete(self, qr_code_id: str, **kwargs) -> 'QRCodeBaseDAO':
        """Mark a QR code as deleted (is_active=False, deleted_at=now)."""
        pass

    @abstractmethod
    def set_counters(
        self,
        qr_code_id: str,
        total_scans: int,
        unique_scans: int,
        last_scan_at: datetime | None,
        **kwargs,
    ) -> bool:
        """Raise the cached counters to values recomputed from scan history.

        The write is a compare-and-set: it is applied only when neither stored
        counter is above the given value, so scans counted concurrently by
        increment_scans() are never overwritten with a lower count.

        Returns:
            bool: True if the counters were written, False if a stored counter
            is already higher.

        Raises:
            ValueError:
                If unique_scans exceeds total_scans.
        """
        pass
