"""Wiring shared by the scan lambdas: config -> components -> orchestrator, and event -> ScanRequest"""

from datetime import datetime, UTC
from typing import Any

from qrhub.dao.base import QRCodeBaseDAO, ScanEventBaseDAO
from qrhub.utils.config import ScanSettings
from qrhub.utils.helpers import client_ip, header, query_param
from qrhub.scanning.resolver import CodeResolver
from qrhub.scanning.rate_limiter import RateLimiter
from qrhub.scanning.recorder import ScanRecorder
from qrhub.scanning.counters import CounterUpdater
from qrhub.scanning.geolocation import GeolocationResolver
from qrhub.scanning.orchestrator import ScanOrchestrator, ScanRequest


UTM_FIELDS = ('utm_source', 'utm_medium', 'utm_campaign')


def build_orchestrator(
    settings: ScanSettings,
    qrcode_dao: QRCodeBaseDAO,
    scan_dao: ScanEventBaseDAO,
    geolocation: GeolocationResolver | None = None,
) -> ScanOrchestrator:
    if geolocation is None:
        geolocation = geolocation_from_settings(settings)

    return ScanOrchestrator(
        resolver=CodeResolver(qrcode_dao),
        rate_limiter=RateLimiter(
            scan_dao,
            max_scans=settings.rate_limit_max_scans,
            window_seconds=settings.rate_limit_window_seconds,
        ),
        recorder=ScanRecorder(
            scan_dao,
            geolocation,
            fingerprint_bucket=settings.fingerprint_bucket,
            fingerprint_salt=settings.fingerprint_salt,
        ),
        counters=CounterUpdater(qrcode_dao),
    )


def scan_request_from_event(event: dict[str, Any], short_code: str | None = None) -> ScanRequest:
    """Extract the scan request from an API Gateway proxy event

    Example:
        >>> request = scan_request_from_event({
        ...     'pathParameters': {'shortCode': 'abc12345'},
        ...     'headers': {'user-agent': 'Mozilla/5.0', 'x-forwarded-for': '203.0.113.7'},
        ...     'queryStringParameters': {'utm_source': 'flyer'},
        ... })
        >>> request.ip, request.utm['utm_source']
        ('203.0.113.7', 'flyer')
    """
    if short_code is None:
        short_code = (event.get('pathParameters') or {}).get('shortCode')

    return ScanRequest(
        short_code=short_code,
        ip=client_ip(event),
        user_agent=header(event, 'User-Agent'),
        referrer=header(event, 'Referer') or header(event, 'Referrer'),
        utm={name: query_param(event, name) for name in UTM_FIELDS},
        received_at=datetime.now(UTC),
    )


def geolocation_from_settings(settings: ScanSettings) -> GeolocationResolver:
    return GeolocationResolver(
        timeout=settings.geolocation_timeout_seconds,
        primary_url=settings.geolocation_primary_url,
        backup_url=settings.geolocation_backup_url,
        batch_url=settings.geolocation_batch_url,
    )
