"""Data Access Object (DAO) implementation for recording scan events in Redis

Every scan event is stored as a hash and indexed in three sorted sets scored by
the scan timestamp:

    - the QR code's timeline (kept forever, used for statistics and reconciliation),
    - a per (QR code, IP) set used by the rate limiter (expires after a day),
    - a per (QR code, fingerprint) set used for uniqueness (expires after two days).

All writes of a single event are sent in one MULTI/EXEC transaction.

Example:
    >>> dao = ScanEventRedisDAO(prefix='qrhub:dev')
    >>> dao.create(event)
    <ScanEventRedisDAO>
    >>> dao.count_recent('qr1', '203.0.113.7', since=datetime.now(UTC) - timedelta(seconds=60))
    1
"""

from datetime import datetime
from typing import Any

from beartype import beartype

from qrhub.models import ScanEventModel, GeoLocation, DeviceInfo, DeviceType, UNKNOWN
from qrhub.dao.base import ScanEventBaseDAO
from qrhub.dao.redis.mixins import RedisClientMixin
from qrhub.dao.redis.helpers import handle_redis_errors, encode_hash, decode_datetime, decode_float
from qrhub.dao.exceptions import ScanEventAlreadyExistsError, ScanEventNotFoundError
from qrhub.utils.constants import ONE_DAY_SECONDS, TWO_DAYS_SECONDS


def _to_hash(event: ScanEventModel) -> dict[str, str]:
    return encode_hash(
        {
            'id': event.id,
            'qr_code_id': event.qr_code_id,
            'business_id': event.business_id,
            'website_id': event.website_id,
            'scanned_at': event.scanned_at,
            'ip_address': event.ip_address,
            'fingerprint': event.fingerprint,
            'country': event.geo.country,
            'city': event.geo.city,
            'region': event.geo.region,
            'latitude': event.geo.latitude,
            'longitude': event.geo.longitude,
            'device': event.device.device.value,
            'browser': event.device.browser,
            'os': event.device.os,
            'user_agent': event.device.user_agent,
            'referrer': event.referrer,
            'utm_source': event.utm_source,
            'utm_medium': event.utm_medium,
            'utm_campaign': event.utm_campaign,
        }
    )


def _from_hash(data: dict[str, Any]) -> ScanEventModel:
    # fmt: off
    geo = GeoLocation(
        country=data.get('country', UNKNOWN),
        city=data.get('city', UNKNOWN),
        region=data.get('region', UNKNOWN),
        latitude=decode_float(data.get('latitude')),
        longitude=decode_float(data.get('longitude')),
    )
    device = DeviceInfo(
        device=DeviceType(data.get('device', DeviceType.OTHER)),
        browser=data.get('browser', UNKNOWN),
        os=data.get('os', UNKNOWN),
        user_agent=data.get('user_agent', UNKNOWN),
    )
    # fmt: on
    return ScanEventModel(
        id=data['id'],
        qr_code_id=data['qr_code_id'],
        business_id=data['business_id'],
        website_id=data['website_id'],
        ip_address=data['ip_address'],
        fingerprint=data['fingerprint'],
        scanned_at=decode_datetime(data['scanned_at']),
        geo=geo,
        device=device,
        referrer=data.get('referrer'),
        utm_source=data.get('utm_source'),
        utm_medium=data.get('utm_medium'),
        utm_campaign=data.get('utm_campaign'),
    )


class ScanEventRedisDAO(RedisClientMixin, ScanEventBaseDAO):
    """Redis-based Data Access Object (DAO) for scan events

    Attributes (see RedisClientMixin):
        redis (redis.Redis):
            Redis client used to communicate with the Redis datastore.
        keys (RedisKeySchema):
            Key schema helper for generating namespaced Redis keys.

    Every method raises DataStoreError on any Redis error.
    """

    @handle_redis_errors
    @beartype
    def create(self, event: ScanEventModel, **kwargs) -> 'ScanEventRedisDAO':
        """Persist a scan event and index it for rate limiting, uniqueness and statistics

        Raises:
            ScanEventAlreadyExistsError:
                If a scan event with the same id already exists.
        """
        scan_key = self.keys.scan_key(event.id)
        if self.redis.exists(scan_key):
            raise ScanEventAlreadyExistsError(f"Scan event with id '{event.id}' already exists.")

        timestamp = event.scanned_at.timestamp()
        timeline_key = self.keys.qrcode_scans_key(event.qr_code_id)
        ip_key = self.keys.ip_scans_key(event.qr_code_id, event.ip_address)
        fingerprint_key = self.keys.fingerprint_scans_key(event.qr_code_id, event.fingerprint)

        with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(scan_key, mapping=_to_hash(event))
            pipe.zadd(timeline_key, {event.id: timestamp})
            pipe.zadd(ip_key, {event.id: timestamp})
            pipe.zremrangebyscore(ip_key, '-inf', timestamp - ONE_DAY_SECONDS)
            pipe.expire(ip_key, ONE_DAY_SECONDS)
            pipe.zadd(fingerprint_key, {event.id: timestamp})
            pipe.expire(fingerprint_key, TWO_DAYS_SECONDS)
            pipe.execute()
        return self

    @handle_redis_errors
    @beartype
    def get(self, scan_id: str, **kwargs) -> ScanEventModel:
        data = self.redis.hgetall(self.keys.scan_key(scan_id))
        if not data:
            raise ScanEventNotFoundError(f"Scan event with id '{scan_id}' not found.")
        return _from_hash(data)

    @handle_redis_errors
    @beartype
    def count_recent(self, qr_code_id: str, ip: str, since: datetime, **kwargs) -> int:
        return int(self.redis.zcount(self.keys.ip_scans_key(qr_code_id, ip), since.timestamp(), '+inf'))

    @handle_redis_errors
    @beartype
    def exists_since(self, qr_code_id: str, fingerprint: str, since: datetime, **kwargs) -> bool:
        return self.redis.zcount(self.keys.fingerprint_scans_key(qr_code_id, fingerprint), since.timestamp(), '+inf') > 0

    @handle_redis_errors
    @beartype
    def find_by_qr_code(
        self,
        qr_code_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
        **kwargs,
    ) -> list[ScanEventModel]:
        """Return scan events of a QR code ordered by scan time

        Args:
            since (datetime | None):
                Inclusive lower bound. Unbounded if None.
            until (datetime | None):
                Inclusive upper bound. Unbounded if None.
        """
        min_score = '-inf' if since is None else since.timestamp()
        max_score = '+inf' if until is None else until.timestamp()
        scan_ids = self.redis.zrangebyscore(self.keys.qrcode_scans_key(qr_code_id), min_score, max_score)
        if not scan_ids:
            return []

        with self.redis.pipeline(transaction=False) as pipe:
            for scan_id in scan_ids:
                pipe.hgetall(self.keys.scan_key(scan_id))
            records = pipe.execute()

        # Skip timeline entries whose hash is missing
        return [_from_hash(data) for data in records if data]
