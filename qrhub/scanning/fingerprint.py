"""Cookie-less visitor fingerprints

A fingerprint is the SHA-256 hex digest of `ip|user agent|<date bucket>`, so the
same visitor on the same device hashes to the same value within a bucket
(one UTC day by default) and to a new one afterwards. No raw IP is stored in
the fingerprint itself.

Example:
    >>> derive_fingerprint('203.0.113.7', 'Mozilla/5.0 ...', as_of=datetime(2026, 3, 1, tzinfo=UTC))
    '5b0c...'  # 64 hex chars
"""

import re
import hashlib
import logging
import secrets
from datetime import datetime, UTC
from enum import StrEnum

from qrhub.utils.helpers import mask_ip
from qrhub.scanning.constants import FINGERPRINT_RANDOM_FALLBACK


logger = logging.getLogger(__name__)

FINGERPRINT_RE = re.compile(r'^[a-f0-9]{64}$')


class FingerprintBucket(StrEnum):
    DAILY = 'daily'
    HOURLY = 'hourly'
    MONTHLY = 'monthly'
    PERSISTENT = 'persistent'


_BUCKET_FORMATS = {
    FingerprintBucket.DAILY: '%Y-%m-%d',
    FingerprintBucket.HOURLY: '%Y-%m-%d-%H',
    FingerprintBucket.MONTHLY: '%Y-%m',
}


def derive_fingerprint(
    ip: str | None,
    user_agent: str | None,
    as_of: datetime | None = None,
    bucket: FingerprintBucket | str = FingerprintBucket.DAILY,
    salt: str | None = None,
    logger: logging.Logger = logger,
) -> str:
    """Derive a visitor fingerprint from ip, user agent and a UTC date bucket

    Args:
        ip (str | None):
            Client IP address.
        user_agent (str | None):
            Raw User-Agent header.
        as_of (datetime | None):
            Moment of the scan. Defaults to now; naive values are taken as UTC.
        bucket (FingerprintBucket | str):
            Date granularity of the fingerprint.
        salt (str | None):
            Optional deployment secret prepended to the hashed material.

    Returns:
        str: 64 lower-case hex chars. A random value when ip or user agent is
             missing, so such scans never collide with each other.
    """
    if not ip or not user_agent:
        logger.warning(
            'Missing ip or user agent for fingerprint. Using a random fingerprint.',
            extra={'event': FINGERPRINT_RANDOM_FALLBACK, 'ip': mask_ip(ip), 'hasUserAgent': bool(user_agent)},
        )
        return secrets.token_hex(32)

    parts = [ip, user_agent]
    bucket = FingerprintBucket(bucket)
    if bucket != FingerprintBucket.PERSISTENT:
        moment = as_of or datetime.now(UTC)
        moment = moment.replace(tzinfo=UTC) if moment.tzinfo is None else moment.astimezone(UTC)
        parts.append(moment.strftime(_BUCKET_FORMATS[bucket]))
    if salt:
        parts.insert(0, salt)

    return hashlib.sha256('|'.join(parts).encode('utf-8')).hexdigest()


def is_valid_fingerprint(fingerprint: object) -> bool:
    return isinstance(fingerprint, str) and FINGERPRINT_RE.match(fingerprint) is not None


def short_fingerprint(fingerprint: str) -> str:
    """First 16 chars of a fingerprint, enough to correlate log lines."""
    return fingerprint[:16] if fingerprint else ''
