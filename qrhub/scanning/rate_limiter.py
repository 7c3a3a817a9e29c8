"""Per (IP, QR code) scan rate limiting over a trailing window

Counts recorded scan events of the IP for the QR code inside the window. The
gate fails open: when the scan store can't answer, the scan is allowed.
"""

import logging
from datetime import datetime, timedelta, UTC

from qrhub.dao.base import ScanEventBaseDAO
from qrhub.dao.exceptions import DAOError
from qrhub.utils.helpers import mask_ip
from qrhub.utils.constants import DEFAULT_RATE_LIMIT_MAX_SCANS, DEFAULT_RATE_LIMIT_WINDOW_SECONDS
from qrhub.scanning.constants import RATE_LIMIT_EXCEEDED, RATE_LIMIT_FAIL_OPEN


logger = logging.getLogger(__name__)


class RateLimiter:
    """Allow at most `max_scans` scans of a QR code per IP within `window_seconds`

    Example:
        >>> limiter = RateLimiter(scan_dao, max_scans=10, window_seconds=60)
        >>> limiter.is_allowed('203.0.113.7', 'qr1')
        True
    """

    def __init__(
        self,
        scan_dao: ScanEventBaseDAO,
        max_scans: int = DEFAULT_RATE_LIMIT_MAX_SCANS,
        window_seconds: int = DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
        logger: logging.Logger = logger,
    ):
        self.scan_dao = scan_dao
        self.max_scans = max_scans
        self.window_seconds = window_seconds
        self.logger = logger

    def is_allowed(self, ip: str, qr_code_id: str, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        since = now - timedelta(seconds=self.window_seconds)

        try:
            recent_scans = self.scan_dao.count_recent(qr_code_id, ip, since)
        except DAOError as e:
            self.logger.warning(
                'Rate limit check failed. Allowing scan.',
                extra={'event': RATE_LIMIT_FAIL_OPEN, 'qrCodeId': qr_code_id, 'ip': mask_ip(ip), 'reason': str(e)},
            )
            return True

        if recent_scans >= self.max_scans:
            self.logger.info(
                'Rate limit exceeded for ip.',
                extra={
                    'event': RATE_LIMIT_EXCEEDED,
                    'qrCodeId': qr_code_id,
                    'ip': mask_ip(ip),
                    'recentScans': recent_scans,
                    'windowSeconds': self.window_seconds,
                },
            )
            return False
        return True
