"""Shared fixtures: in-memory stores, sample QR codes, user agents and a stubbed geolocation provider."""

import dataclasses
from datetime import datetime, UTC

import httpx
import pytest

from qrhub.models import QRCodeModel, QRStatus, ScanEventModel
from qrhub.dao.base import QRCodeBaseDAO, ScanEventBaseDAO
from qrhub.dao.exceptions import (
    QRCodeAlreadyExistsError,
    QRCodeNotFoundError,
    ScanEventAlreadyExistsError,
    ScanEventNotFoundError,
)
from qrhub.scanning.geolocation import GeolocationResolver


IPHONE_UA = (
    'Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 '
    '(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1'
)
ANDROID_UA = (
    'Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36'
)
DESKTOP_UA = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)


class InMemoryQRCodeDAO(QRCodeBaseDAO):
    def __init__(self):
        self.qrcodes: dict[str, QRCodeModel] = {}
        self.short_codes: dict[str, str] = {}

    def insert(self, qr_code, **kwargs):
        if qr_code.id in self.qrcodes or qr_code.short_code in self.short_codes:
            raise QRCodeAlreadyExistsError(qr_code.id)
        self.qrcodes[qr_code.id] = qr_code
        self.short_codes[qr_code.short_code] = qr_code.id
        return self

    def get(self, qr_code_id, **kwargs):
        try:
            return self.qrcodes[qr_code_id]
        except KeyError:
            raise QRCodeNotFoundError(qr_code_id) from None

    def find_by_short_code(self, short_code, **kwargs):
        try:
            return self.get(self.short_codes[short_code.lower()])
        except KeyError:
            raise QRCodeNotFoundError(short_code) from None

    def increment_scans(self, qr_code_id, is_unique, scanned_at, **kwargs):
        qr_code = self.get(qr_code_id)
        qr_code = dataclasses.replace(
            qr_code,
            total_scans=qr_code.total_scans + 1,
            unique_scans=qr_code.unique_scans + (1 if is_unique else 0),
            last_scan_at=scanned_at,
        )
        self.qrcodes[qr_code_id] = qr_code
        return qr_code.total_scans, qr_code.unique_scans

    def set_status(self, qr_code_id, status, **kwargs):
        self.qrcodes[qr_code_id] = dataclasses.replace(self.get(qr_code_id), status=status)
        return self

    def soft_delete(self, qr_code_id, **kwargs):
        self.qrcodes[qr_code_id] = dataclasses.replace(self.get(qr_code_id), is_active=False, deleted_at=datetime.now(UTC))
        return self

    def set_counters(self, qr_code_id, total_scans, unique_scans, last_scan_at, **kwargs):
        if unique_scans > total_scans:
            raise ValueError(qr_code_id)
        stored = self.get(qr_code_id)
        if total_scans < stored.total_scans or unique_scans < stored.unique_scans:
            return False
        self.qrcodes[qr_code_id] = dataclasses.replace(
            stored,
            total_scans=total_scans,
            unique_scans=unique_scans,
            last_scan_at=last_scan_at,
        )
        return True


class InMemoryScanEventDAO(ScanEventBaseDAO):
    def __init__(self):
        self.events: dict[str, ScanEventModel] = {}

    def create(self, event, **kwargs):
        if event.id in self.events:
            raise ScanEventAlreadyExistsError(event.id)
        self.events[event.id] = event
        return self

    def get(self, scan_id, **kwargs):
        try:
            return self.events[scan_id]
        except KeyError:
            raise ScanEventNotFoundError(scan_id) from None

    def count_recent(self, qr_code_id, ip, since, **kwargs):
        return sum(1 for e in self.events.values() if e.qr_code_id == qr_code_id and e.ip_address == ip and e.scanned_at >= since)

    def exists_since(self, qr_code_id, fingerprint, since, **kwargs):
        return any(e.qr_code_id == qr_code_id and e.fingerprint == fingerprint and e.scanned_at >= since for e in self.events.values())

    def find_by_qr_code(self, qr_code_id, since=None, until=None, **kwargs):
        events = [
            e
            for e in self.events.values()
            if e.qr_code_id == qr_code_id and (since is None or e.scanned_at >= since) and (until is None or e.scanned_at <= until)
        ]
        return sorted(events, key=lambda e: e.scanned_at)


# -------------------------------
# Fixtures
# -------------------------------


@pytest.fixture
def iphone_ua() -> str:
    return IPHONE_UA


@pytest.fixture
def android_ua() -> str:
    return ANDROID_UA


@pytest.fixture
def desktop_ua() -> str:
    return DESKTOP_UA


@pytest.fixture
def qr_code() -> QRCodeModel:
    return QRCodeModel(
        id='qr1',
        business_id='biz1',
        website_id='web1',
        name='Lunch menu',
        target_url='https://example.com/menu',
        short_code='abc12345',
    )


@pytest.fixture
def qrcode_dao(qr_code) -> InMemoryQRCodeDAO:
    return InMemoryQRCodeDAO().insert(qr_code)


@pytest.fixture
def scan_dao() -> InMemoryScanEventDAO:
    return InMemoryScanEventDAO()


@pytest.fixture
def inactive_qr_code() -> QRCodeModel:
    return QRCodeModel(
        id='qr2',
        business_id='biz1',
        website_id='web1',
        name='Old flyer',
        target_url='https://example.com/flyer',
        short_code='flyer2025',
        status=QRStatus.INACTIVE,
    )


@pytest.fixture
def geo_requests() -> list[httpx.Request]:
    """Requests seen by the stubbed geolocation provider."""
    return []


@pytest.fixture
def geolocation(geo_requests) -> GeolocationResolver:
    """GeolocationResolver whose primary provider always answers Lisbon, Portugal."""

    def handler(request: httpx.Request) -> httpx.Response:
        geo_requests.append(request)
        return httpx.Response(
            200,
            json={'status': 'success', 'country': 'Portugal', 'city': 'Lisbon', 'regionName': 'Lisbon', 'lat': 38.72, 'lon': -9.14},
        )

    return GeolocationResolver(client=httpx.Client(transport=httpx.MockTransport(handler)))


@pytest.fixture
def failing_geolocation(geo_requests) -> GeolocationResolver:
    """GeolocationResolver whose providers all time out."""

    def handler(request: httpx.Request) -> httpx.Response:
        geo_requests.append(request)
        raise httpx.ConnectTimeout('timed out', request=request)

    return GeolocationResolver(client=httpx.Client(transport=httpx.MockTransport(handler)))


@pytest.fixture
def make_scan_event():
    """Factory for ScanEventModel instances of qr1 with sensible defaults."""

    def factory(id: str, scanned_at: datetime, ip: str = '8.8.8.8', fingerprint: str = 'a' * 64, **kwargs) -> ScanEventModel:
        kwargs.setdefault('qr_code_id', 'qr1')
        kwargs.setdefault('business_id', 'biz1')
        kwargs.setdefault('website_id', 'web1')
        return ScanEventModel(id=id, ip_address=ip, fingerprint=fingerprint, scanned_at=scanned_at, **kwargs)

    return factory
