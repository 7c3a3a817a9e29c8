"""Recompute cached QR code counters from scan event history

Cached counters drift when a counter update fails after the scan event was
persisted. Reconciliation recounts:

    total_scans  = number of scan events
    unique_scans = number of distinct (fingerprint, UTC day) pairs

and writes them back only when neither would decrease, so counters stay
monotonic even if scan history was partially lost. The write itself is a
compare-and-set in the store, so scans counted between the read and the
write are never overwritten.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from qrhub.dao.base import QRCodeBaseDAO, ScanEventBaseDAO
from qrhub.scanning.constants import COUNTERS_RECONCILED, COUNTERS_RECONCILE_SKIPPED


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    qr_code_id: str
    cached_total: int
    cached_unique: int
    computed_total: int
    computed_unique: int
    last_scan_at: datetime | None
    updated: bool

    def to_dict(self) -> dict:
        return {
            'qrCodeId': self.qr_code_id,
            'cachedTotal': self.cached_total,
            'cachedUnique': self.cached_unique,
            'computedTotal': self.computed_total,
            'computedUnique': self.computed_unique,
            'updated': self.updated,
        }


def reconcile_counters(
    qrcode_dao: QRCodeBaseDAO,
    scan_dao: ScanEventBaseDAO,
    qr_code_id: str,
    logger: logging.Logger = logger,
) -> ReconcileResult:
    """Recount the scans of one QR code and correct its cached counters

    Raises:
        QRCodeNotFoundError: if the QR code doesn't exist.
        DAOError: if either store can't be read or written.
    """
    qr_code = qrcode_dao.get(qr_code_id)
    events = scan_dao.find_by_qr_code(qr_code_id)

    computed_total = len(events)
    computed_unique = len({(event.fingerprint, event.scan_date) for event in events})
    last_scan_at = max((event.scanned_at for event in events), default=qr_code.last_scan_at)

    unchanged = computed_total == qr_code.total_scans and computed_unique == qr_code.unique_scans
    would_decrease = computed_total < qr_code.total_scans or computed_unique < qr_code.unique_scans

    if unchanged:
        skip_reason = 'unchanged'
    elif would_decrease:
        skip_reason = 'would decrease'
    # Guarded write: scans counted since the read above make it a no-op
    elif not qrcode_dao.set_counters(qr_code_id, computed_total, computed_unique, last_scan_at):
        skip_reason = 'changed concurrently'
    else:
        skip_reason = None

    if skip_reason:
        logger.info(
            'Skipping counter reconciliation.',
            extra={
                'event': COUNTERS_RECONCILE_SKIPPED,
                'qrCodeId': qr_code_id,
                'reason': skip_reason,
                'cachedTotal': qr_code.total_scans,
                'computedTotal': computed_total,
            },
        )
        updated = False
    else:
        logger.info(
            'Reconciled cached scan counters.',
            extra={
                'event': COUNTERS_RECONCILED,
                'qrCodeId': qr_code_id,
                'totalScans': computed_total,
                'uniqueScans': computed_unique,
            },
        )
        updated = True

    return ReconcileResult(
        qr_code_id=qr_code_id,
        cached_total=qr_code.total_scans,
        cached_unique=qr_code.unique_scans,
        computed_total=computed_total,
        computed_unique=computed_unique,
        last_scan_at=last_scan_at,
        updated=updated,
    )
