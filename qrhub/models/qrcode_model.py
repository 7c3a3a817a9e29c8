import re
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Optional

from qrhub.utils.constants import SHORT_CODE_MIN_LENGTH, SHORT_CODE_MAX_LENGTH, SHORT_CODE_PATTERN


TARGET_URL_RE = re.compile(r'^https?://.+')
HEX_COLOR_RE = re.compile(r'^#[0-9A-Fa-f]{6}$')
SHORT_CODE_RE = re.compile(SHORT_CODE_PATTERN)


class QRStatus(StrEnum):
    ACTIVE = 'active'
    INACTIVE = 'inactive'
    ARCHIVED = 'archived'


def is_valid_short_code(short_code: object) -> bool:
    """Return True if `short_code` has the public short code shape (6-20 chars of [a-zA-Z0-9-])."""
    if not isinstance(short_code, str):
        return False
    if not SHORT_CODE_MIN_LENGTH <= len(short_code) <= SHORT_CODE_MAX_LENGTH:
        return False
    return SHORT_CODE_RE.match(short_code) is not None


@dataclass(frozen=True)
class QRCodeModel:
    """Represent one trackable QR code owned by a business website.

    Attributes:
        id (str):
            Unique identifier of the QR code.
        business_id (str):
            Owning business identifier (denormalized onto every scan).
        website_id (str):
            Owning website identifier (denormalized onto every scan).
        name (str):
            Human readable name shown in the management UI.
        target_url (str):
            Absolute http(s) URL the short code redirects to.
        short_code (str):
            Unique, case-insensitive code embedded in the QR image. Stored lower-case.
        image_url (str):
            Reference to the generated PNG/SVG image.
        status (QRStatus):
            Lifecycle status set by the owner.
        total_scans (int):
            Cached number of recorded scans.
        unique_scans (int):
            Cached number of first-of-the-day scans per visitor.
        last_scan_at (Optional[datetime]):
            Time of the most recent scan counted.
        is_active (bool):
            False once soft-deleted.
        deleted_at (Optional[datetime]):
            Soft-delete timestamp.

    Raises:
        ValueError:
            If the target URL, short code, colors or counters are invalid.

    Example:
        >>> qr = QRCodeModel(
        ...     id='qr1',
        ...     business_id='b1',
        ...     website_id='w1',
        ...     name='Menu',
        ...     target_url='https://example.com/menu',
        ...     short_code='ABC12345',
        ... )
        >>> qr.short_code
        'abc12345'
        >>> qr.is_scannable
        True
    """

    id: str
    business_id: str
    website_id: str
    name: str
    target_url: str
    short_code: str
    description: str = ''
    image_url: str = ''
    logo_url: Optional[str] = None
    primary_color: str = '#000000'
    background_color: str = '#FFFFFF'
    status: QRStatus = QRStatus.ACTIVE
    total_scans: int = 0
    unique_scans: int = 0
    last_scan_at: Optional[datetime] = None
    is_active: bool = True
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not TARGET_URL_RE.match(self.target_url or ''):
            raise ValueError(f"Target URL must be an absolute http(s) URL (given: '{self.target_url}').")
        if not is_valid_short_code(self.short_code):
            raise ValueError(f"Invalid short code '{self.short_code}'.")
        for color in (self.primary_color, self.background_color):
            if not HEX_COLOR_RE.match(color):
                raise ValueError(f"Invalid hex color '{color}'.")
        if self.total_scans < 0 or self.unique_scans < 0:
            raise ValueError('Scan counters must be non-negative.')

        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, 'short_code', self.short_code.lower())
        object.__setattr__(self, 'status', QRStatus(self.status))

    @property
    def is_scannable(self) -> bool:
        return self.is_active and self.status == QRStatus.ACTIVE

    def short_url(self, base_url: str) -> str:
        return f'{base_url.rstrip("/")}/s/{self.short_code}'
