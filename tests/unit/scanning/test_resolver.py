"""Unit tests for short code resolution in resolver.py.

Every unavailable code must fail the same way, whatever the cause.
"""

from unittest.mock import MagicMock

import pytest

from qrhub.models import QRStatus
from qrhub.dao.base import QRCodeBaseDAO
from qrhub.dao.exceptions import DataStoreError
from qrhub.exceptions import QRCodeUnavailableError, PUBLIC_NOT_FOUND_MESSAGE
from qrhub.scanning.resolver import CodeResolver


@pytest.fixture
def resolver(qrcode_dao) -> CodeResolver:
    return CodeResolver(qrcode_dao)


def test_find_active(resolver, qr_code):
    assert resolver.find_active('abc12345') == qr_code


def test_find_active_is_case_insensitive(resolver, qr_code):
    assert resolver.find_active('ABC12345') == qr_code


def test_find_active_unknown_code(resolver):
    with pytest.raises(QRCodeUnavailableError):
        resolver.find_active('zzz99999')


@pytest.mark.parametrize('status', [QRStatus.INACTIVE, QRStatus.ARCHIVED])
def test_find_active_inactive_code(resolver, qrcode_dao, status):
    qrcode_dao.set_status('qr1', status)

    with pytest.raises(QRCodeUnavailableError):
        resolver.find_active('abc12345')


def test_find_active_soft_deleted_code(resolver, qrcode_dao):
    qrcode_dao.soft_delete('qr1')

    with pytest.raises(QRCodeUnavailableError):
        resolver.find_active('abc12345')


@pytest.mark.parametrize('short_code', [None, '', 'ab', 'abc_1234', 'a' * 21, 'abc 1234'])
def test_find_active_malformed_code_skips_store(short_code):
    dao = MagicMock(spec=QRCodeBaseDAO)

    with pytest.raises(QRCodeUnavailableError):
        CodeResolver(dao).find_active(short_code)
    dao.find_by_short_code.assert_not_called()


def test_unavailable_codes_are_indistinguishable(qrcode_dao, inactive_qr_code):
    qrcode_dao.insert(inactive_qr_code)
    resolver = CodeResolver(qrcode_dao)

    errors = []
    for short_code in ('zzz99999', 'flyer2025', 'ab'):
        with pytest.raises(QRCodeUnavailableError) as exc_info:
            resolver.find_active(short_code)
        errors.append(exc_info.value)

    assert {type(error) for error in errors} == {QRCodeUnavailableError}
    assert {error.error_code for error in errors} == {'scan:not_found'}
    assert {error.public_message for error in errors} == {PUBLIC_NOT_FOUND_MESSAGE}


def test_find_active_logs_cause(qrcode_dao, inactive_qr_code, caplog):
    caplog.set_level('INFO')
    qrcode_dao.insert(inactive_qr_code)

    with pytest.raises(QRCodeUnavailableError):
        CodeResolver(qrcode_dao).find_active('flyer2025')

    record = next(record for record in caplog.records if hasattr(record, 'event'))
    assert record.event == 'CODE_INACTIVE'
    assert record.qrCodeId == 'qr2'


def test_find_active_store_failure_propagates():
    dao = MagicMock(spec=QRCodeBaseDAO)
    dao.find_by_short_code.side_effect = DataStoreError("Can't reach Redis.")

    with pytest.raises(DataStoreError):
        CodeResolver(dao).find_active('abc12345')
