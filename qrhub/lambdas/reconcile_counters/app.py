import json
import logging
from typing import Any

from qrhub.dao.redis import QRCodeRedisDAO, ScanEventRedisDAO
from qrhub.dao.exceptions import DataStoreError, QRCodeNotFoundError
from qrhub.scanning.reconcile import reconcile_counters, ReconcileResult
from qrhub.utils import load_config, app_prefix, redis_kwargs, flush_logging
from qrhub.lambdas.reconcile_counters.constants import SUCCESS, PARTIAL, ERROR


logger = logging.getLogger(__name__)


def response_success(*, results: list[ReconcileResult], missing: list[str]) -> str:
    return json.dumps(
        {
            'status': PARTIAL if missing else SUCCESS,
            'reconciled': sum(1 for result in results if result.updated),
            'results': [result.to_dict() for result in results],
            'missing': missing,
        }
    )


def response_error(*, error: Exception) -> str:
    return json.dumps(
        {
            'status': ERROR,
            'message': 'Failed to reconcile scan counters',
            'reason': str(error),
            'error': error.__class__.__name__,
        }
    )


def lambda_handler(event: dict, context: Any) -> str:
    """Recompute cached scan counters from scan history

    Triggered on a schedule (EventBridge) with the QR codes to check:

        {"qrCodeIds": ["qr1", "qr2"]}

    Diagnostic responses:
        success / partial:
            status: success (or partial when some QR codes don't exist)
            reconciled: <number of QR codes whose counters were corrected>
            results: [{qrCodeId, cachedTotal, cachedUnique, computedTotal, computedUnique, updated}]
            missing: [<unknown QR code ids>]
        error:
            status: error
            message: Failed to reconcile scan counters
            reason: <reason>
            error: <error class name> (e.g. DataStoreError)
    """
    try:
        qr_code_ids = [str(qr_code_id) for qr_code_id in (event or {}).get('qrCodeIds') or []]

        try:
            redis_config = redis_kwargs(load_config('reconcile_counters'))
            qrcode_dao = QRCodeRedisDAO(**redis_config, prefix=app_prefix())
            scan_dao = ScanEventRedisDAO(**redis_config, prefix=app_prefix())

            results, missing = [], []
            for qr_code_id in qr_code_ids:
                try:
                    results.append(reconcile_counters(qrcode_dao, scan_dao, qr_code_id))
                except QRCodeNotFoundError:
                    logger.warning('QR code not found. Skipping reconciliation.', extra={'event': PARTIAL, 'qrCodeId': qr_code_id})
                    missing.append(qr_code_id)
        except (DataStoreError, KeyError) as error:
            logger.exception(
                'Failed to reconcile scan counters.',
                extra={'event': ERROR, 'reason': str(error), 'error': error.__class__.__name__},
            )
            return response_error(error=error)

        logger.info(
            'Reconciled scan counters.',
            extra={'event': SUCCESS, 'checked': len(qr_code_ids), 'missing': len(missing)},
        )
        return response_success(results=results, missing=missing)
    finally:
        flush_logging()
