"""Exceptions related to Data Access Objects (DAO) operations.

Classes:
    DAOError:
        Generic base class for DAO-related exceptions.

    QRCodeNotFoundError:
        Raised when a QRCodeModel is not found in the data store.

    QRCodeAlreadyExistsError:
        Raised when inserting a QRCodeModel whose id or short code is taken.

    ScanEventNotFoundError:
        Raised when a ScanEventModel is not found in the data store.

    ScanEventAlreadyExistsError:
        Raised when inserting a ScanEventModel whose id is taken.

    DataStoreError:
        Raised when there is an error in the data store (e.g., connection issues, timeouts, OOM, etc.).

Example:
    >>> from qrhub.dao.exceptions import QRCodeNotFoundError
    >>> raise QRCodeNotFoundError("QR code with short code 'abc12345' not found.")
    Traceback (most recent call last):
        ...
    qrhub.dao.exceptions.QRCodeNotFoundError: QR code with short code 'abc12345' not found.
"""


class DAOError(Exception):
    """Generic base class for DAO-related exceptions."""

    pass


class QRCodeNotFoundError(DAOError):
    """Exception raised when a QRCodeModel is not found in the data store."""

    pass


class QRCodeAlreadyExistsError(DAOError):
    """Exception raised when a QRCodeModel with the same id or short code already exists."""

    pass


class ScanEventNotFoundError(DAOError):
    """Exception raised when a ScanEventModel is not found in the data store."""

    pass


class ScanEventAlreadyExistsError(DAOError):
    """Exception raised when a ScanEventModel with the same id already exists."""

    pass


class DataStoreError(DAOError):
    """Exception raised when there is an error in the data store.

    e.g. connection issues, timeouts, OOM, etc.
    """

    pass
