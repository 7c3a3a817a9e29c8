import json
import logging
from typing import Any

from qrhub.dao.redis import QRCodeRedisDAO, ScanEventRedisDAO
from qrhub.dao.exceptions import DataStoreError
from qrhub.exceptions import PUBLIC_NOT_FOUND_MESSAGE
from qrhub.models import is_valid_short_code
from qrhub.utils import load_config, app_prefix, base_url, redis_kwargs, ScanSettings, mask_ip, flush_logging
from qrhub.utils.helpers import guarantee_fallback_response, client_ip
from qrhub.scanning.orchestrator import ScanOutcome
from qrhub.scanning.pipeline import build_orchestrator, scan_request_from_event, geolocation_from_settings
from qrhub.lambdas.scan_preview.constants import (
    MALFORMED_SHORT_CODE,
    DATA_STORE_UNAVAILABLE,
    SCAN_NOT_PREVIEWED,
    PREVIEW_SUCCESS,
    PREVIEW_SUCCESS_MESSAGE,
)


logger = logging.getLogger(__name__)


def response_200(body: dict) -> dict:
    return {
        'statusCode': 200,
        'headers': {
            'Content-Type': 'application/json',
            'Cache-Control': 'no-store',
        },
        'body': json.dumps(body),
    }


def response_404() -> dict:
    return {
        'statusCode': 404,
        'headers': {
            'Content-Type': 'application/json',
            'Cache-Control': 'no-store',
        },
        'body': json.dumps({'success': False, 'message': PUBLIC_NOT_FOUND_MESSAGE}),
    }


def preview_body(outcome: ScanOutcome, event: dict, redirect_in: int) -> dict:
    qr_code = outcome.qr_code
    scan = outcome.scan
    return {
        'success': True,
        'message': PREVIEW_SUCCESS_MESSAGE,
        'data': {
            'qrCode': {
                'id': qr_code.id,
                'name': qr_code.name,
                'shortCode': qr_code.short_code,
                'shortUrl': qr_code.short_url(base_url(event)),
            },
            'targetUrl': outcome.target_url,
            'scan': {
                'id': scan.event.id,
                'isUnique': scan.is_unique,
                'device': scan.event.device.device.value,
                'location': scan.event.location,
            },
            'redirectIn': redirect_in,
        },
    }


@guarantee_fallback_response(response_404)
def lambda_handler(event: dict, context: Any) -> dict:
    """Handle QR code scan previews (GET /s/{shortCode}/preview)

    Runs the same scan pipeline as the redirect route (the scan is recorded),
    but answers with JSON so a client page can show a countdown before
    redirecting.

    HTTP responses:
        200: Scan recorded
            body: {success, message, data: {qrCode, targetUrl, scan, redirectIn}}
        404: Any rejection
            body: {success: false, message: "QR code not found or inactive"}

    Example:
        >>> response = lambda_handler({'pathParameters': {'shortCode': 'abc12345'}}, None)
        >>> json.loads(response['body'])['data']['redirectIn']
        3
    """
    try:
        short_code = (event.get('pathParameters') or {}).get('shortCode')
        if not is_valid_short_code(short_code):
            logger.info(
                'Missing or malformed short code in path. Responding with 404.',
                extra={'event': MALFORMED_SHORT_CODE, 'ip': mask_ip(client_ip(event))},
            )
            return response_404()

        app_config = load_config('scan_preview')
        settings = ScanSettings.from_config(app_config)
        redis_config = redis_kwargs(app_config)
        try:
            qrcode_dao = QRCodeRedisDAO(**redis_config, prefix=app_prefix())
            scan_dao = ScanEventRedisDAO(**redis_config, prefix=app_prefix())
        except DataStoreError:
            logger.exception('Data store unavailable. Responding with 404.', extra={'event': DATA_STORE_UNAVAILABLE})
            return response_404()

        with geolocation_from_settings(settings) as geolocation:
            orchestrator = build_orchestrator(settings, qrcode_dao, scan_dao, geolocation=geolocation)
            outcome = orchestrator.process(scan_request_from_event(event, short_code))

        if not outcome.is_redirect:
            logger.info(
                'Scan rejected. Responding with 404.',
                extra={'event': SCAN_NOT_PREVIEWED, 'shortCode': short_code, 'errorCode': outcome.rejection.error_code},
            )
            return response_404()

        logger.info(
            'Scan previewed. Responding with 200.',
            extra={'event': PREVIEW_SUCCESS, 'shortCode': short_code, 'scanId': outcome.scan.event.id},
        )
        return response_200(preview_body(outcome, event, redirect_in=settings.redirect_delay_seconds))
    finally:
        flush_logging()
