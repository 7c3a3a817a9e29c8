"""Unit tests for best-effort counter updates in counters.py."""

from datetime import datetime, UTC
from unittest.mock import MagicMock

import pytest
import redis

from qrhub.dao.base import QRCodeBaseDAO
from qrhub.dao.exceptions import DataStoreError, QRCodeNotFoundError
from qrhub.dao.redis import QRCodeRedisDAO
from qrhub.scanning.counters import CounterUpdater


NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


def test_apply_unique_scan(qrcode_dao, qr_code):
    CounterUpdater(qrcode_dao).apply_scan(qr_code, is_unique=True, scanned_at=NOW)

    updated = qrcode_dao.get('qr1')
    assert (updated.total_scans, updated.unique_scans) == (1, 1)
    assert updated.last_scan_at == NOW


def test_apply_repeat_scan(qrcode_dao, qr_code):
    counters = CounterUpdater(qrcode_dao)

    counters.apply_scan(qr_code, is_unique=True, scanned_at=NOW)
    counters.apply_scan(qr_code, is_unique=False, scanned_at=NOW)

    updated = qrcode_dao.get('qr1')
    assert (updated.total_scans, updated.unique_scans) == (2, 1)


def test_apply_scan_swallows_store_failures(qr_code, caplog):
    dao = MagicMock(spec=QRCodeBaseDAO)
    dao.increment_scans.side_effect = DataStoreError("Can't reach Redis.")

    CounterUpdater(dao).apply_scan(qr_code, is_unique=True, scanned_at=NOW)

    dao.increment_scans.assert_called_once_with('qr1', True, NOW)
    record = next(record for record in caplog.records if getattr(record, 'event', None) == 'COUNTER_UPDATE_FAILED')
    assert record.error == 'DataStoreError'


def test_apply_scan_for_missing_qr_code(qr_code):
    # Deleted between resolution and counting
    dao = MagicMock(spec=QRCodeBaseDAO)
    dao.increment_scans.side_effect = QRCodeNotFoundError('qr1')

    CounterUpdater(dao).apply_scan(qr_code, is_unique=False)

    assert dao.increment_scans.call_args.args[2].tzinfo is not None


@pytest.mark.parametrize(
    'error',
    [
        redis.exceptions.OutOfMemoryError('OOM command not allowed when used memory > maxmemory'),
        redis.exceptions.ReadOnlyError("READONLY You can't write against a read only replica."),
        redis.exceptions.ResponseError('WRONGTYPE Operation against a key holding the wrong kind of value'),
    ],
)
def test_apply_scan_swallows_redis_command_errors(qr_code, caplog, error):
    redis_client = MagicMock(spec=redis.client.Pipeline)
    redis_client.exists.return_value = True
    redis_client.pipeline.return_value = redis_client
    redis_client.__enter__.return_value = redis_client
    redis_client.__exit__.return_value = None
    redis_client.execute.side_effect = error
    redis_client.connection_pool = MagicMock()
    redis_client.connection_pool.connection_kwargs = {'host': '203.0.113.1', 'port': 18000, 'db': 5}
    dao = QRCodeRedisDAO(redis_client=redis_client, prefix='qrhub:test')

    CounterUpdater(dao).apply_scan(qr_code, is_unique=True, scanned_at=NOW)

    redis_client.hincrby.assert_any_call('qrhub:test:qrcodes:qr1', 'total_scans', 1)
    record = next(record for record in caplog.records if getattr(record, 'event', None) == 'COUNTER_UPDATE_FAILED')
    assert record.error == 'DataStoreError'
