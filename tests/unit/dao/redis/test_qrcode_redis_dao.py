"""Unit tests for the QRCodeRedisDAO

Test coverage includes:

1. Insertion behavior
   - Claims the short code index with SET NX and stores the hash.
   - Duplicate ids and short codes raise QRCodeAlreadyExistsError.
   - Invalid types raise BeartypeCallHintParamViolation.
   - Redis connection errors raise DataStoreError.

2. Retrieval behavior
   - get() and find_by_short_code() rebuild a QRCodeModel from the hash.
   - Missing records raise QRCodeNotFoundError.

3. Counter operations
   - increment_scans() sends HINCRBY commands in one transaction.
   - Missing QR codes raise QRCodeNotFoundError.

4. Lifecycle operations
   - set_status() and soft_delete() update hash fields.
   - set_counters() is a WATCH-guarded write that never lowers stored counters.
"""

from datetime import datetime, UTC
from unittest.mock import MagicMock, call

import pytest
import redis
from beartype.roar import BeartypeCallHintParamViolation
from freezegun import freeze_time

from qrhub.models import QRCodeModel, QRStatus
from qrhub.dao.exceptions import DataStoreError, QRCodeAlreadyExistsError, QRCodeNotFoundError
from qrhub.dao.redis import RedisKeySchema, QRCodeRedisDAO


# -------------------------------
# Fixtures
# -------------------------------


@pytest.fixture
def redis_client():
    """Mock a Redis pipeline-compatible client."""
    _redis_client = MagicMock(spec=redis.client.Pipeline)
    _redis_client.exists.return_value = False
    _redis_client.set.return_value = True
    _redis_client.pipeline.return_value = _redis_client
    _redis_client.__enter__.return_value = _redis_client
    _redis_client.__exit__.return_value = None
    _redis_client.connection_pool = MagicMock()
    _redis_client.connection_pool.connection_kwargs = {'host': '203.0.113.1', 'port': 18000, 'db': 5}
    return _redis_client


@pytest.fixture
def dao(redis_client):
    _dao = QRCodeRedisDAO(redis_client=redis_client, prefix='qrhub:test')
    _dao.keys = RedisKeySchema(prefix='qrhub:test')
    return _dao


@pytest.fixture
def stored_hash():
    return {
        'id': 'qr1',
        'business_id': 'biz1',
        'website_id': 'web1',
        'name': 'Lunch menu',
        'target_url': 'https://example.com/menu',
        'short_code': 'abc12345',
        'status': 'active',
        'total_scans': '5',
        'unique_scans': '3',
        'last_scan_at': '2026-03-01T12:00:00+00:00',
        'is_active': '1',
        'created_at': '2026-02-01T00:00:00+00:00',
    }


# -------------------------------
# 1. Insertion behavior
# -------------------------------


@freeze_time('2026-03-01 10:00:00')
def test_insert_qr_code(dao, redis_client, qr_code):
    dao.insert(qr_code)

    redis_client.exists.assert_called_once_with('qrhub:test:qrcodes:qr1')
    redis_client.set.assert_called_once_with('qrhub:test:qrcodes:shortcodes:abc12345', 'qr1', nx=True)

    key, = redis_client.hset.call_args.args
    mapping = redis_client.hset.call_args.kwargs['mapping']
    assert key == 'qrhub:test:qrcodes:qr1'
    assert mapping['target_url'] == 'https://example.com/menu'
    assert mapping['short_code'] == 'abc12345'
    assert mapping['status'] == 'active'
    assert mapping['total_scans'] == '0'
    assert mapping['is_active'] == '1'
    assert mapping['created_at'] == '2026-03-01T10:00:00+00:00'
    assert 'deleted_at' not in mapping


def test_insert_qr_code_with_taken_id(dao, redis_client, qr_code):
    redis_client.exists.return_value = True

    with pytest.raises(QRCodeAlreadyExistsError, match="id 'qr1'"):
        dao.insert(qr_code)
    redis_client.set.assert_not_called()
    redis_client.hset.assert_not_called()


def test_insert_qr_code_with_taken_short_code(dao, redis_client, qr_code):
    redis_client.set.return_value = None  # SET NX lost the race

    with pytest.raises(QRCodeAlreadyExistsError, match="short code 'abc12345'"):
        dao.insert(qr_code)
    redis_client.hset.assert_not_called()


def test_insert_with_invalid_type(dao):
    with pytest.raises((TypeError, BeartypeCallHintParamViolation)):
        dao.insert('https://example.com/notamodel')


def test_insert_with_redis_connection_error(dao, redis_client, qr_code):
    redis_client.exists.side_effect = redis.exceptions.ConnectionError('Connection error')

    with pytest.raises(DataStoreError, match="Can't reach Redis at 203.0.113.1:18000/5"):
        dao.insert(qr_code)


# -------------------------------
# 2. Retrieval behavior
# -------------------------------


def test_get_qr_code(dao, redis_client, stored_hash):
    redis_client.hgetall.return_value = stored_hash

    qr_code = dao.get('qr1')

    redis_client.hgetall.assert_called_once_with('qrhub:test:qrcodes:qr1')
    assert qr_code == QRCodeModel(
        id='qr1',
        business_id='biz1',
        website_id='web1',
        name='Lunch menu',
        target_url='https://example.com/menu',
        short_code='abc12345',
        total_scans=5,
        unique_scans=3,
        last_scan_at=datetime(2026, 3, 1, 12, tzinfo=UTC),
        created_at=datetime(2026, 2, 1, tzinfo=UTC),
    )


def test_get_missing_qr_code(dao, redis_client):
    redis_client.hgetall.return_value = {}

    with pytest.raises(QRCodeNotFoundError):
        dao.get('nope')


def test_find_by_short_code_is_case_insensitive(dao, redis_client, stored_hash):
    redis_client.get.return_value = 'qr1'
    redis_client.hgetall.return_value = stored_hash

    qr_code = dao.find_by_short_code('ABC12345')

    redis_client.get.assert_called_once_with('qrhub:test:qrcodes:shortcodes:abc12345')
    assert qr_code.id == 'qr1'


def test_find_by_short_code_returns_inactive_codes(dao, redis_client, stored_hash):
    redis_client.get.return_value = 'qr1'
    redis_client.hgetall.return_value = {**stored_hash, 'status': 'archived', 'is_active': '0'}

    qr_code = dao.find_by_short_code('abc12345')

    assert qr_code.status == QRStatus.ARCHIVED
    assert qr_code.is_active is False
    assert qr_code.is_scannable is False


def test_find_by_unknown_short_code(dao, redis_client):
    redis_client.get.return_value = None

    with pytest.raises(QRCodeNotFoundError, match="short code 'zzz99999'"):
        dao.find_by_short_code('zzz99999')
    redis_client.hgetall.assert_not_called()


# -------------------------------
# 3. Counter operations
# -------------------------------


@pytest.mark.parametrize('is_unique, unique_increment', [(True, 1), (False, 0)])
def test_increment_scans(dao, redis_client, is_unique, unique_increment):
    scanned_at = datetime(2026, 3, 1, 12, 30, tzinfo=UTC)
    redis_client.exists.return_value = True
    redis_client.execute.return_value = [6, 3 + unique_increment, 0]

    totals = dao.increment_scans('qr1', is_unique, scanned_at)

    assert totals == (6, 3 + unique_increment)
    redis_client.pipeline.assert_called_once_with(transaction=True)
    redis_client.hincrby.assert_has_calls(
        [
            call('qrhub:test:qrcodes:qr1', 'total_scans', 1),
            call('qrhub:test:qrcodes:qr1', 'unique_scans', unique_increment),
        ]
    )
    redis_client.hset.assert_called_once_with('qrhub:test:qrcodes:qr1', 'last_scan_at', '2026-03-01T12:30:00+00:00')


def test_increment_scans_of_missing_qr_code(dao, redis_client):
    redis_client.exists.return_value = False

    with pytest.raises(QRCodeNotFoundError):
        dao.increment_scans('nope', True, datetime.now(UTC))
    redis_client.hincrby.assert_not_called()


def test_increment_scans_with_redis_timeout(dao, redis_client):
    redis_client.exists.return_value = True
    redis_client.execute.side_effect = redis.exceptions.TimeoutError('Timeout reading from socket')

    with pytest.raises(DataStoreError):
        dao.increment_scans('qr1', True, datetime.now(UTC))


# -------------------------------
# 4. Lifecycle operations
# -------------------------------


@freeze_time('2026-03-01 10:00:00')
def test_set_status(dao, redis_client):
    redis_client.exists.return_value = True

    dao.set_status('qr1', QRStatus.INACTIVE)

    redis_client.hset.assert_called_once_with(
        'qrhub:test:qrcodes:qr1',
        mapping={'status': 'inactive', 'updated_at': '2026-03-01T10:00:00+00:00'},
    )


@freeze_time('2026-03-01 10:00:00')
def test_soft_delete(dao, redis_client):
    redis_client.exists.return_value = True

    dao.soft_delete('qr1')

    redis_client.hset.assert_called_once_with(
        'qrhub:test:qrcodes:qr1',
        mapping={
            'is_active': '0',
            'deleted_at': '2026-03-01T10:00:00+00:00',
            'updated_at': '2026-03-01T10:00:00+00:00',
        },
    )


def test_soft_delete_missing_qr_code(dao, redis_client):
    redis_client.exists.return_value = False

    with pytest.raises(QRCodeNotFoundError):
        dao.soft_delete('nope')


@freeze_time('2026-03-01 10:00:00')
def test_set_counters(dao, redis_client):
    redis_client.hmget.return_value = ['5', '3']

    assert dao.set_counters('qr1', 10, 4, datetime(2026, 2, 28, 9, tzinfo=UTC)) is True

    redis_client.watch.assert_called_once_with('qrhub:test:qrcodes:qr1')
    redis_client.hmget.assert_called_once_with('qrhub:test:qrcodes:qr1', 'total_scans', 'unique_scans')
    redis_client.multi.assert_called_once()
    redis_client.execute.assert_called_once()
    redis_client.hset.assert_called_once_with(
        'qrhub:test:qrcodes:qr1',
        mapping={
            'total_scans': '10',
            'unique_scans': '4',
            'last_scan_at': '2026-02-28T09:00:00+00:00',
            'updated_at': '2026-03-01T10:00:00+00:00',
        },
    )


def test_set_counters_rejects_unique_above_total(dao, redis_client):
    redis_client.exists.return_value = True

    with pytest.raises(ValueError):
        dao.set_counters('qr1', 3, 4, None)
    redis_client.hset.assert_not_called()


@pytest.mark.parametrize('stored', [['11', '3'], ['10', '5']])
def test_set_counters_never_lowers_stored_counters(dao, redis_client, stored):
    redis_client.hmget.return_value = stored

    assert dao.set_counters('qr1', 10, 4, None) is False

    redis_client.unwatch.assert_called_once()
    redis_client.multi.assert_not_called()
    redis_client.hset.assert_not_called()


def test_set_counters_retries_when_scanned_concurrently(dao, redis_client):
    # The first EXEC aborts: a scan touched the key after WATCH
    redis_client.hmget.side_effect = [['5', '3'], ['6', '3']]
    redis_client.execute.side_effect = [redis.exceptions.WatchError('Watched variable changed.'), [1]]

    assert dao.set_counters('qr1', 10, 4, None) is True

    assert redis_client.watch.call_count == 2
    assert redis_client.hset.call_count == 2


def test_set_counters_gives_up_after_repeated_conflicts(dao, redis_client):
    redis_client.hmget.return_value = ['5', '3']
    redis_client.execute.side_effect = redis.exceptions.WatchError('Watched variable changed.')

    assert dao.set_counters('qr1', 10, 4, None) is False
    assert redis_client.execute.call_count == 3


def test_set_counters_missing_qr_code(dao, redis_client):
    redis_client.hmget.return_value = [None, None]

    with pytest.raises(QRCodeNotFoundError):
        dao.set_counters('nope', 10, 4, None)
    redis_client.hset.assert_not_called()


def test_set_counters_with_read_only_replica(dao, redis_client):
    redis_client.hmget.return_value = ['5', '3']
    redis_client.execute.side_effect = redis.exceptions.ReadOnlyError("READONLY You can't write against a read only replica.")

    with pytest.raises(DataStoreError, match='failed the command'):
        dao.set_counters('qr1', 10, 4, None)
