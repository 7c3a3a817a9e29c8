import logging
from typing import Any

from qrhub.dao.redis import QRCodeRedisDAO, ScanEventRedisDAO
from qrhub.dao.exceptions import DataStoreError
from qrhub.models import is_valid_short_code
from qrhub.utils import load_config, app_prefix, redis_kwargs, ScanSettings, mask_ip, flush_logging
from qrhub.utils.helpers import guarantee_fallback_response, client_ip
from qrhub.scanning.pages import render_not_found_page
from qrhub.scanning.pipeline import build_orchestrator, scan_request_from_event, geolocation_from_settings
from qrhub.lambdas.scan_redirect.constants import (
    MALFORMED_SHORT_CODE,
    DATA_STORE_UNAVAILABLE,
    SCAN_NOT_REDIRECTED,
    REDIRECT_SUCCESS,
)


logger = logging.getLogger(__name__)


def response_302(*, location: str) -> dict:
    return {
        'statusCode': 302,
        'headers': {
            'Location': location,
            'Cache-Control': 'no-store',
        },
        'body': '',
    }


def response_404() -> dict:
    return {
        'statusCode': 404,
        'headers': {
            'Content-Type': 'text/html; charset=utf-8',
            'Cache-Control': 'no-store',
        },
        'body': render_not_found_page(),
    }


@guarantee_fallback_response(response_404)
def lambda_handler(event: dict, context: Any) -> dict:
    """Handle public QR code scans (GET /s/{shortCode})

    This Lambda handler follows this procedure to redirect scans:
    - Step 1: Validate the short code from the request path
    - Step 2: Load configuration and connect to the data store
    - Step 3: Run the scan pipeline (resolve, rate limit, record, count)
    - Step 4: Redirect the client to the target URL

    HTTP responses:
        302: Scan recorded
            headers:
                Location: target URL destination
                Cache-Control: no-store
        404: Any rejection (unknown, inactive or deleted code, rate limited, store failure)
            body: branded HTML page "QR code not found or inactive"

    Args:
        event (dict):
            API Gateway event payload containing the shortCode path parameter.
        context (LambdaContext):
            AWS Lambda runtime context object (not used directly).

    Returns:
        dict:
            API Gateway-compatible response including statusCode, headers, and body.

    Example:
        >>> event = {'pathParameters': {'shortCode': 'abc12345'}, 'headers': {'User-Agent': '...'}}
        >>> response = lambda_handler(event, None)
        >>> response['statusCode']
        302
        >>> response['headers']['Location']
        'https://example.com/menu'
    """
    try:
        # 1- Validate short code before touching any store
        short_code = (event.get('pathParameters') or {}).get('shortCode')
        if not is_valid_short_code(short_code):
            logger.info(
                'Missing or malformed short code in path. Responding with 404.',
                extra={'event': MALFORMED_SHORT_CODE, 'ip': mask_ip(client_ip(event))},
            )
            return response_404()

        # 2- Load application config and connect to the data store
        app_config = load_config('scan_redirect')
        settings = ScanSettings.from_config(app_config)
        redis_config = redis_kwargs(app_config)
        try:
            qrcode_dao = QRCodeRedisDAO(**redis_config, prefix=app_prefix())
            scan_dao = ScanEventRedisDAO(**redis_config, prefix=app_prefix())
        except DataStoreError:
            logger.exception('Data store unavailable. Responding with 404.', extra={'event': DATA_STORE_UNAVAILABLE})
            return response_404()

        # 3- Run the scan pipeline
        with geolocation_from_settings(settings) as geolocation:
            orchestrator = build_orchestrator(settings, qrcode_dao, scan_dao, geolocation=geolocation)
            outcome = orchestrator.process(scan_request_from_event(event, short_code))

        if not outcome.is_redirect:
            logger.info(
                'Scan rejected. Responding with 404.',
                extra={'event': SCAN_NOT_REDIRECTED, 'shortCode': short_code, 'errorCode': outcome.rejection.error_code},
            )
            return response_404()

        # 4- Redirect client to target URL
        logger.info(
            'Redirecting client to target URL. Responding with 302.',
            extra={'event': REDIRECT_SUCCESS, 'shortCode': short_code, 'scanId': outcome.scan.event.id},
        )
        return response_302(location=outcome.target_url)
    finally:
        flush_logging()
