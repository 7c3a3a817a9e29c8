"""On-demand scan statistics computed from scan event history

Example:
    >>> stats = compute_scan_stats(scan_dao, 'qr1', since=datetime(2026, 3, 1, tzinfo=UTC))
    >>> stats.total, stats.unique, stats.repeat
    (42, 17, 25)
    >>> stats.by_device
    {'iOS': 30, 'Android': 10, 'Desktop': 2}
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from qrhub.dao.base import ScanEventBaseDAO
from qrhub.models import ScanEventModel


@dataclass(frozen=True)
class ScanStats:
    """Aggregates over the scan events of one QR code

    `unique` counts distinct fingerprints in the range. Breakdowns are plain
    dicts ordered by key (days, hours) or by descending count (places, devices).
    """

    qr_code_id: str
    total: int = 0
    unique: int = 0
    repeat: int = 0
    first_scan_at: datetime | None = None
    last_scan_at: datetime | None = None
    by_day: dict[str, int] = field(default_factory=dict)
    by_hour: dict[int, int] = field(default_factory=dict)
    by_country: dict[str, int] = field(default_factory=dict)
    by_city: dict[str, int] = field(default_factory=dict)
    by_device: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'qrCodeId': self.qr_code_id,
            'totalScans': self.total,
            'uniqueScans': self.unique,
            'repeatScans': self.repeat,
            'firstScanAt': self.first_scan_at.isoformat() if self.first_scan_at else None,
            'lastScanAt': self.last_scan_at.isoformat() if self.last_scan_at else None,
            'byDay': self.by_day,
            'byHour': {str(hour): count for hour, count in self.by_hour.items()},
            'byCountry': self.by_country,
            'byCity': self.by_city,
            'byDevice': self.by_device,
        }


def aggregate_scans(qr_code_id: str, events: list[ScanEventModel]) -> ScanStats:
    if not events:
        return ScanStats(qr_code_id=qr_code_id)

    total = len(events)
    unique = len({event.fingerprint for event in events})
    scan_times = [event.scanned_at for event in events]

    return ScanStats(
        qr_code_id=qr_code_id,
        total=total,
        unique=unique,
        repeat=total - unique,
        first_scan_at=min(scan_times),
        last_scan_at=max(scan_times),
        by_day=dict(sorted(Counter(event.scan_date for event in events).items())),
        by_hour=dict(sorted(Counter(event.scan_hour for event in events).items())),
        by_country=dict(Counter(event.geo.country for event in events).most_common()),
        by_city=dict(Counter(event.geo.label for event in events).most_common()),
        by_device=dict(Counter(event.device.device.value for event in events).most_common()),
    )


def compute_scan_stats(
    scan_dao: ScanEventBaseDAO,
    qr_code_id: str,
    since: datetime | None = None,
    until: datetime | None = None,
) -> ScanStats:
    """Load the scan events of a QR code in [since, until] and aggregate them

    Raises:
        DAOError: if the scan store can't be read.
    """
    return aggregate_scans(qr_code_id, scan_dao.find_by_qr_code(qr_code_id, since=since, until=until))
