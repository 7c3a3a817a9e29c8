"""Data Access Object (DAO) implementation for managing QR codes in Redis

This module provides a Redis-based implementation of QRCodeBaseDAO.

Responsibilities:
    - Insert QR codes and maintain the case-insensitive short code index;
    - Resolve QR codes by id or short code (whatever their status);
    - Atomically increment the cached scan counters;
    - Apply owner lifecycle changes (status, soft delete);
    - Raise drifted counters under WATCH without ever lowering them.

Classes:
    QRCodeRedisDAO:
        DAO for storing and retrieving QRCodeModel in a Redis datastore.

Example:
    >>> from qrhub.models import QRCodeModel
    >>> from qrhub.dao.redis import QRCodeRedisDAO

    >>> dao = QRCodeRedisDAO(prefix='qrhub:dev')
    >>> dao.insert(QRCodeModel(id='qr1', business_id='b1', website_id='w1', name='Menu',
    ...                        target_url='https://example.com/menu', short_code='abc12345'))
    <QRCodeRedisDAO>

    >>> dao.find_by_short_code('ABC12345').id
    'qr1'
    >>> dao.increment_scans('qr1', is_unique=True, scanned_at=datetime.now(UTC))
    (1, 1)
"""

from datetime import datetime, UTC
from typing import Any

import redis
from beartype import beartype

from qrhub.models import QRCodeModel, QRStatus
from qrhub.dao.base import QRCodeBaseDAO
from qrhub.dao.redis.mixins import RedisClientMixin
from qrhub.dao.redis.helpers import handle_redis_errors, encode_hash, decode_datetime, decode_bool
from qrhub.dao.exceptions import QRCodeAlreadyExistsError, QRCodeNotFoundError
from qrhub.utils.constants import COUNTER_WRITE_MAX_ATTEMPTS


def _to_hash(qr_code: QRCodeModel) -> dict[str, str]:
    return encode_hash(
        {
            'id': qr_code.id,
            'business_id': qr_code.business_id,
            'website_id': qr_code.website_id,
            'name': qr_code.name,
            'description': qr_code.description,
            'target_url': qr_code.target_url,
            'short_code': qr_code.short_code,
            'image_url': qr_code.image_url,
            'logo_url': qr_code.logo_url,
            'primary_color': qr_code.primary_color,
            'background_color': qr_code.background_color,
            'status': qr_code.status.value,
            'total_scans': qr_code.total_scans,
            'unique_scans': qr_code.unique_scans,
            'last_scan_at': qr_code.last_scan_at,
            'is_active': qr_code.is_active,
            'deleted_at': qr_code.deleted_at,
            'created_at': qr_code.created_at,
            'updated_at': qr_code.updated_at,
        }
    )


def _from_hash(data: dict[str, Any]) -> QRCodeModel:
    return QRCodeModel(
        id=data['id'],
        business_id=data['business_id'],
        website_id=data['website_id'],
        name=data['name'],
        target_url=data['target_url'],
        short_code=data['short_code'],
        description=data.get('description', ''),
        image_url=data.get('image_url', ''),
        logo_url=data.get('logo_url'),
        primary_color=data.get('primary_color', '#000000'),
        background_color=data.get('background_color', '#FFFFFF'),
        status=QRStatus(data.get('status', QRStatus.ACTIVE)),
        total_scans=int(data.get('total_scans', 0)),
        unique_scans=int(data.get('unique_scans', 0)),
        last_scan_at=decode_datetime(data.get('last_scan_at')),
        is_active=decode_bool(data.get('is_active'), default=True),
        deleted_at=decode_datetime(data.get('deleted_at')),
        created_at=decode_datetime(data.get('created_at')),
        updated_at=decode_datetime(data.get('updated_at')),
    )


class QRCodeRedisDAO(RedisClientMixin, QRCodeBaseDAO):
    """Redis-based Data Access Object (DAO) for managing QR codes

    Attributes (see RedisClientMixin):
        redis (redis.Redis):
            Redis client used to communicate with the Redis datastore.
        keys (RedisKeySchema):
            Key schema helper for generating namespaced Redis keys.

    Every method raises DataStoreError on any Redis error.
    """

    @handle_redis_errors
    @beartype
    def insert(self, qr_code: QRCodeModel, **kwargs) -> 'QRCodeRedisDAO':
        """Insert a QR code and claim its short code

        The short code index is claimed first with SET NX, so two concurrent
        inserts of the same short code can't both succeed.

        Raises:
            QRCodeAlreadyExistsError:
                If the id or the short code is already taken.
        """
        qrcode_key = self.keys.qrcode_key(qr_code.id)
        short_code_key = self.keys.short_code_key(qr_code.short_code)

        if self.redis.exists(qrcode_key):
            raise QRCodeAlreadyExistsError(f"QR code with id '{qr_code.id}' already exists.")
        if not self.redis.set(short_code_key, qr_code.id, nx=True):
            raise QRCodeAlreadyExistsError(f"QR code with short code '{qr_code.short_code}' already exists.")

        now = datetime.now(UTC)
        fields = _to_hash(qr_code)
        fields.setdefault('created_at', now.isoformat())
        fields.setdefault('updated_at', now.isoformat())
        self.redis.hset(qrcode_key, mapping=fields)
        return self

    @handle_redis_errors
    @beartype
    def get(self, qr_code_id: str, **kwargs) -> QRCodeModel:
        data = self.redis.hgetall(self.keys.qrcode_key(qr_code_id))
        if not data:
            raise QRCodeNotFoundError(f"QR code with id '{qr_code_id}' not found.")
        return _from_hash(data)

    @handle_redis_errors
    @beartype
    def find_by_short_code(self, short_code: str, **kwargs) -> QRCodeModel:
        """Resolve a short code (case-insensitive) to its QR code

        Raises:
            QRCodeNotFoundError:
                If the short code isn't indexed or its QR code record is gone.
        """
        qr_code_id = self.redis.get(self.keys.short_code_key(short_code))
        if qr_code_id is None:
            raise QRCodeNotFoundError(f"QR code with short code '{short_code.lower()}' not found.")
        return self.get(qr_code_id)

    @handle_redis_errors
    @beartype
    def increment_scans(self, qr_code_id: str, is_unique: bool, scanned_at: datetime, **kwargs) -> tuple[int, int]:
        """Atomically increment the cached scan counters of a QR code

        Both HINCRBY commands and the last scan time are sent in a single MULTI/EXEC
        transaction, so concurrent scans never lose increments and unique scans can't
        overtake total scans.

        Returns:
            tuple[int, int]: (total_scans, unique_scans) after the increment.

        Raises:
            QRCodeNotFoundError:
                If the QR code doesn't exist.
        """
        qrcode_key = self.keys.qrcode_key(qr_code_id)
        if not self.redis.exists(qrcode_key):
            raise QRCodeNotFoundError(f"QR code with id '{qr_code_id}' not found.")

        with self.redis.pipeline(transaction=True) as pipe:
            pipe.hincrby(qrcode_key, 'total_scans', 1)
            pipe.hincrby(qrcode_key, 'unique_scans', 1 if is_unique else 0)
            pipe.hset(qrcode_key, 'last_scan_at', scanned_at.isoformat())
            total_scans, unique_scans, _ = pipe.execute()

        return int(total_scans), int(unique_scans)

    @handle_redis_errors
    @beartype
    def set_status(self, qr_code_id: str, status: QRStatus, **kwargs) -> 'QRCodeRedisDAO':
        self._update(qr_code_id, {'status': status.value})
        return self

    @handle_redis_errors
    @beartype
    def soft_delete(self, qr_code_id: str, **kwargs) -> 'QRCodeRedisDAO':
        self._update(qr_code_id, {'is_active': False, 'deleted_at': datetime.now(UTC)})
        return self

    @handle_redis_errors
    @beartype
    def set_counters(
        self,
        qr_code_id: str,
        total_scans: int,
        unique_scans: int,
        last_scan_at: datetime | None,
        **kwargs,
    ) -> bool:
        """Raise the cached counters of a QR code, never lowering them

        The stored counters are read under WATCH and the HSET is sent in a
        MULTI/EXEC transaction. If a scan increments the counters in between,
        EXEC aborts with WatchError and the comparison is redone against the
        fresh values.

        Returns:
            bool:
                True if the counters were written. False if a stored counter is
                already higher, or the QR code kept changing for every attempt.

        Raises:
            ValueError:
                If unique_scans exceeds total_scans.
            QRCodeNotFoundError:
                If the QR code doesn't exist.
        """
        if unique_scans > total_scans:
            raise ValueError(f'Unique scans ({unique_scans}) can not exceed total scans ({total_scans}).')

        qrcode_key = self.keys.qrcode_key(qr_code_id)
        fields = encode_hash(
            {
                'total_scans': total_scans,
                'unique_scans': unique_scans,
                'last_scan_at': last_scan_at,
                'updated_at': datetime.now(UTC),
            }
        )

        with self.redis.pipeline(transaction=True) as pipe:
            for _ in range(COUNTER_WRITE_MAX_ATTEMPTS):
                try:
                    pipe.watch(qrcode_key)
                    stored_total, stored_unique = pipe.hmget(qrcode_key, 'total_scans', 'unique_scans')
                    if stored_total is None:
                        raise QRCodeNotFoundError(f"QR code with id '{qr_code_id}' not found.")
                    if total_scans < int(stored_total) or unique_scans < int(stored_unique or 0):
                        pipe.unwatch()
                        return False

                    pipe.multi()
                    pipe.hset(qrcode_key, mapping=fields)
                    pipe.execute()
                    return True
                except redis.exceptions.WatchError:
                    continue

        return False

    def _update(self, qr_code_id: str, fields: dict[str, Any]) -> None:
        qrcode_key = self.keys.qrcode_key(qr_code_id)
        if not self.redis.exists(qrcode_key):
            raise QRCodeNotFoundError(f"QR code with id '{qr_code_id}' not found.")

        fields = encode_hash({**fields, 'updated_at': datetime.now(UTC)})
        self.redis.hset(qrcode_key, mapping=fields)
