import ipaddress
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import StrEnum
from typing import Optional


UNKNOWN = 'Unknown'


class DeviceType(StrEnum):
    IOS = 'iOS'
    ANDROID = 'Android'
    DESKTOP = 'Desktop'
    OTHER = 'Other'


# fmt: off
@dataclass(frozen=True)
class GeoLocation:
    country: str = UNKNOWN
    city: str = UNKNOWN
    region: str = UNKNOWN
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def label(self) -> str:
        """'City, Country' with unknown parts dropped."""
        if self.city == UNKNOWN and self.country == UNKNOWN:
            return UNKNOWN
        if self.city == UNKNOWN:
            return self.country
        if self.country == UNKNOWN:
            return self.city
        return f'{self.city}, {self.country}'


@dataclass(frozen=True)
class DeviceInfo:
    device: DeviceType = DeviceType.OTHER
    browser: str = UNKNOWN
    os: str = UNKNOWN
    user_agent: str = UNKNOWN

    @property
    def is_mobile(self) -> bool:
        return self.device in (DeviceType.IOS, DeviceType.ANDROID)

    @property
    def is_desktop(self) -> bool:
        return self.device == DeviceType.DESKTOP
# fmt: on


@dataclass(frozen=True)
class ScanEventModel:
    """Represent one immutable scan of a QR code.

    Business and website ids are copied from the QR code at record time so
    aggregations never need to join back to the owner records.

    Raises:
        ValueError:
            If `ip_address` is not a valid IPv4/IPv6 address or ids are missing.
    """

    id: str
    qr_code_id: str
    business_id: str
    website_id: str
    ip_address: str
    fingerprint: str
    scanned_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    geo: GeoLocation = field(default_factory=GeoLocation)
    device: DeviceInfo = field(default_factory=DeviceInfo)
    referrer: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None

    def __post_init__(self):
        if not self.qr_code_id or not self.business_id or not self.website_id:
            raise ValueError('Scan events require qr_code_id, business_id and website_id.')
        try:
            ipaddress.ip_address(self.ip_address)
        except ValueError as e:
            raise ValueError(f"Invalid IP address '{self.ip_address}'.") from e

    @property
    def scan_date(self) -> str:
        return self.scanned_at.astimezone(UTC).date().isoformat()

    @property
    def scan_hour(self) -> int:
        return self.scanned_at.astimezone(UTC).hour

    @property
    def location(self) -> str:
        return self.geo.label
