"""Scan recording: derive device, location and fingerprint, decide uniqueness, persist

A scan is unique when its fingerprint hasn't scanned the same QR code since the
start of the current UTC day. The check is read-then-write: two concurrent first
scans of the same visitor may both be counted as unique.
"""

import uuid
import ipaddress
import logging
from dataclasses import dataclass
from datetime import datetime, UTC

from qrhub.types import UTMParams
from qrhub.models import QRCodeModel, ScanEventModel
from qrhub.dao.base import ScanEventBaseDAO
from qrhub.dao.exceptions import DAOError
from qrhub.utils.helpers import mask_ip, start_of_day
from qrhub.utils.constants import UNKNOWN_IP_ADDRESS
from qrhub.scanning.device import classify_device
from qrhub.scanning.fingerprint import derive_fingerprint, short_fingerprint, FingerprintBucket
from qrhub.scanning.geolocation import GeolocationResolver
from qrhub.scanning.constants import UNIQUENESS_CHECK_FAILED, SCAN_RECORDED


logger = logging.getLogger(__name__)


def _normalize_ip(ip: str | None) -> str:
    try:
        return str(ipaddress.ip_address((ip or '').strip()))
    except ValueError:
        return UNKNOWN_IP_ADDRESS


@dataclass(frozen=True)
class RecordedScan:
    event: ScanEventModel
    is_unique: bool


class ScanRecorder:
    """Build and persist one ScanEventModel per accepted scan

    Attributes:
        scan_dao (ScanEventBaseDAO):
            Scan event store.
        geolocation (GeolocationResolver):
            IP geolocation provider chain.
        fingerprint_bucket (FingerprintBucket):
            Date granularity of fingerprints.
        fingerprint_salt (str | None):
            Optional secret mixed into fingerprints.

    The only exception `record()` lets through is the DAOError raised while
    persisting the event.
    """

    def __init__(
        self,
        scan_dao: ScanEventBaseDAO,
        geolocation: GeolocationResolver,
        fingerprint_bucket: FingerprintBucket | str = FingerprintBucket.DAILY,
        fingerprint_salt: str | None = None,
        logger: logging.Logger = logger,
    ):
        self.scan_dao = scan_dao
        self.geolocation = geolocation
        self.fingerprint_bucket = FingerprintBucket(fingerprint_bucket)
        self.fingerprint_salt = fingerprint_salt
        self.logger = logger

    def record(
        self,
        qr_code: QRCodeModel,
        ip: str | None,
        user_agent: str | None,
        referrer: str | None = None,
        utm: UTMParams | None = None,
        now: datetime | None = None,
    ) -> RecordedScan:
        now = now or datetime.now(UTC)
        ip = _normalize_ip(ip)
        utm = utm or {}

        device = classify_device(user_agent, logger=self.logger)
        geo = self.geolocation.resolve(ip)
        fingerprint = derive_fingerprint(
            ip if ip != UNKNOWN_IP_ADDRESS else None,
            user_agent,
            as_of=now,
            bucket=self.fingerprint_bucket,
            salt=self.fingerprint_salt,
            logger=self.logger,
        )

        try:
            is_unique = not self.scan_dao.exists_since(qr_code.id, fingerprint, start_of_day(now))
        except DAOError as e:
            # Optimistic: a failed lookup counts the scan as unique
            self.logger.warning(
                'Uniqueness check failed. Counting scan as unique.',
                extra={'event': UNIQUENESS_CHECK_FAILED, 'qrCodeId': qr_code.id, 'reason': str(e)},
            )
            is_unique = True

        event = ScanEventModel(
            id=uuid.uuid4().hex,
            qr_code_id=qr_code.id,
            business_id=qr_code.business_id,
            website_id=qr_code.website_id,
            ip_address=ip,
            fingerprint=fingerprint,
            scanned_at=now,
            geo=geo,
            device=device,
            referrer=referrer or None,
            utm_source=utm.get('utm_source'),
            utm_medium=utm.get('utm_medium'),
            utm_campaign=utm.get('utm_campaign'),
        )
        self.scan_dao.create(event)

        self.logger.info(
            'Scan recorded.',
            extra={
                'event': SCAN_RECORDED,
                'qrCodeId': qr_code.id,
                'scanId': event.id,
                'ip': mask_ip(ip),
                'fingerprint': short_fingerprint(fingerprint),
                'isUnique': is_unique,
                'device': device.device.value,
                'location': geo.label,
            },
        )
        return RecordedScan(event=event, is_unique=is_unique)
