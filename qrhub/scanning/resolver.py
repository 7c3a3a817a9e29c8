"""Short code resolution to scannable QR codes"""

import logging

from qrhub.models import QRCodeModel, QRStatus, is_valid_short_code
from qrhub.dao.base import QRCodeBaseDAO
from qrhub.dao.exceptions import QRCodeNotFoundError
from qrhub.exceptions import QRCodeUnavailableError
from qrhub.scanning.constants import CODE_NOT_FOUND, CODE_INACTIVE, CODE_DELETED, CODE_MALFORMED


logger = logging.getLogger(__name__)


class CodeResolver:
    """Resolve a public short code to an active QR code

    Missing, malformed, deactivated, archived and soft-deleted codes all raise the
    same QRCodeUnavailableError; the actual cause is only logged.
    DataStoreError from the QR code store propagates unchanged.
    """

    def __init__(self, qrcode_dao: QRCodeBaseDAO, logger: logging.Logger = logger):
        self.qrcode_dao = qrcode_dao
        self.logger = logger

    def find_active(self, short_code: str | None) -> QRCodeModel:
        """Return the scannable QR code for `short_code` (case-insensitive)

        Raises:
            QRCodeUnavailableError:
                If the short code doesn't resolve to a scannable QR code.
            DataStoreError:
                If the QR code store is unreachable.
        """
        if not is_valid_short_code(short_code):
            self._unavailable(short_code, CODE_MALFORMED)

        normalized = short_code.lower()
        try:
            qr_code = self.qrcode_dao.find_by_short_code(normalized)
        except QRCodeNotFoundError:
            self._unavailable(normalized, CODE_NOT_FOUND)

        if not qr_code.is_active or qr_code.deleted_at is not None:
            self._unavailable(normalized, CODE_DELETED, qrCodeId=qr_code.id)
        if qr_code.status != QRStatus.ACTIVE:
            self._unavailable(normalized, CODE_INACTIVE, qrCodeId=qr_code.id, status=qr_code.status.value)

        return qr_code

    def _unavailable(self, short_code: str | None, event: str, **details) -> None:
        self.logger.info(
            'QR code unavailable for scanning.',
            extra={'event': event, 'shortCode': short_code, **details},
        )
        raise QRCodeUnavailableError(f"QR code '{short_code}' is not available ({event}).")
