"""Best-effort update of the cached scan counters on QR codes"""

import logging
from datetime import datetime, UTC

from qrhub.models import QRCodeModel
from qrhub.dao.base import QRCodeBaseDAO
from qrhub.dao.exceptions import DAOError
from qrhub.scanning.constants import COUNTER_UPDATE_FAILED


logger = logging.getLogger(__name__)


class CounterUpdater:
    """Apply one scan to the cached counters of a QR code

    Failures are logged and swallowed: the scan event is already persisted, and
    counters can be recomputed from history (see qrhub.scanning.reconcile).
    """

    def __init__(self, qrcode_dao: QRCodeBaseDAO, logger: logging.Logger = logger):
        self.qrcode_dao = qrcode_dao
        self.logger = logger

    def apply_scan(self, qr_code: QRCodeModel, is_unique: bool, scanned_at: datetime | None = None) -> None:
        try:
            total_scans, unique_scans = self.qrcode_dao.increment_scans(qr_code.id, is_unique, scanned_at or datetime.now(UTC))
        except DAOError as e:
            self.logger.warning(
                'Failed to update cached scan counters.',
                extra={'event': COUNTER_UPDATE_FAILED, 'qrCodeId': qr_code.id, 'reason': str(e), 'error': e.__class__.__name__},
            )
        else:
            self.logger.debug(
                'Updated cached scan counters.',
                extra={'qrCodeId': qr_code.id, 'totalScans': total_scans, 'uniqueScans': unique_scans},
            )
