"""Helper utilities for AWS lambda functions.

Functions:
    base_url(event) -> str
        Extract correct public base URL from API Gateway event
    header(event, name) -> str | None
        Case-insensitive request header lookup
    query_param(event, name) -> str | None
        Query string parameter lookup
    client_ip(event) -> str
        Resolve the scanning client's IP address behind proxies
    mask_ip(ip) -> str
        Anonymize an IP address for logging
    start_of_day(moment) -> datetime
        Compute the first moment of the UTC day containing `moment`
    require_environment(*names: str) -> Callable
        Decorator: Ensure required environment variables are present
    guarantee_fallback_response(fallback) -> Callable
        Decorator: Turn unhandled handler exceptions into a fallback response

Example:
    Typical usage inside a Lambda handler:

        >>> from qrhub.utils.helpers import client_ip, mask_ip
        >>> event = {'headers': {'X-Forwarded-For': '203.0.113.7, 10.0.0.1'}}
        >>> client_ip(event)
        '203.0.113.7'
        >>> mask_ip(client_ip(event))
        '203.0.xxx.xxx'
"""

import os
import logging
import functools
import ipaddress
from datetime import datetime, UTC
from typing import Any
from collections.abc import Callable

from qrhub.utils.runtime import running_locally
from qrhub.utils.constants import PUBLIC_BASE_URL_ENV, UNKNOWN_IP_ADDRESS


logger = logging.getLogger(__name__)

# Proxy headers checked (in order) for the original client IP
CLIENT_IP_HEADERS = ('X-Forwarded-For', 'CF-Connecting-IP', 'X-Real-IP')


def base_url(event: dict[str, Any]) -> str:
    """Extract public base URL from API Gateway event

    `PUBLIC_BASE_URL` wins when set. Otherwise custom domains are returned
    without the stage name and default execute-api domains with it.

    Example:
        >>> base_url({'requestContext': {'domainName': 'qrhub.example.com', 'stage': 'Prod'}})
        'https://qrhub.example.com'
        >>> base_url({})
        'http://localhost:3000'
    """
    if public_base_url := os.environ.get(PUBLIC_BASE_URL_ENV):
        return public_base_url.rstrip('/')

    request_context = event.get('requestContext') or {}
    domain = request_context.get('domainName', '')
    stage = request_context.get('stage', '')

    if domain and 'execute-api' not in domain:
        # If the domain is a custom domain (no execute-api), skip stage
        return f'https://{domain}'
    elif domain:
        # Otherwise include the stage (for AWS default domains)
        return f'https://{domain}/{stage}'
    else:
        # Fallback: local invocation (SAM CLI, tests, etc.)
        return 'http://localhost:3000'


def header(event: dict[str, Any], name: str) -> str | None:
    """Case-insensitive lookup of a request header

    API Gateway passes headers with the client's casing (REST APIs) or
    lower-cased (HTTP APIs), so both forms must match.
    """
    wanted = name.lower()
    for key, value in (event.get('headers') or {}).items():
        if key.lower() == wanted:
            return value
    return None


def query_param(event: dict[str, Any], name: str) -> str | None:
    value = (event.get('queryStringParameters') or {}).get(name)
    return value if value else None


def client_ip(event: dict[str, Any]) -> str:
    """Resolve the scanning client's IP address

    The source IP API Gateway saw wins when it is a public address: forwarding
    headers are client-supplied and could be rotated to dodge rate limits.
    Only when the peer is a local proxy (`sam local`, an internal load
    balancer) or unknown are X-Forwarded-For (first entry), CF-Connecting-IP
    and X-Real-IP checked, in that order. Missing or malformed values resolve
    to '0.0.0.0'.

    Example:
        >>> client_ip({'headers': {'X-Forwarded-For': '1.1.1.1'}, 'requestContext': {'identity': {'sourceIp': '8.8.8.8'}}})
        '8.8.8.8'
        >>> client_ip({'headers': {'X-Forwarded-For': '1.1.1.1'}, 'requestContext': {'identity': {'sourceIp': '127.0.0.1'}}})
        '1.1.1.1'
    """
    request_context = event.get('requestContext') or {}
    source_ip = _parse_ip((request_context.get('identity') or {}).get('sourceIp')) or _parse_ip(
        (request_context.get('http') or {}).get('sourceIp')
    )
    if source_ip is not None and source_ip.is_global:
        return str(source_ip)

    for name in CLIENT_IP_HEADERS:
        forwarded_ip = _parse_ip(header(event, name))
        if forwarded_ip is not None:
            return str(forwarded_ip)

    return str(source_ip) if source_ip is not None else UNKNOWN_IP_ADDRESS


def _parse_ip(candidate: str | None) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    if not candidate:
        return None
    ip = candidate.split(',')[0].strip()
    try:
        return ipaddress.ip_address(ip)
    except ValueError:
        logger.debug('Ignoring malformed client IP candidate.', extra={'candidate': mask_ip(ip)})
        return None


def mask_ip(ip: str | None) -> str:
    """Anonymize an IP address for logging

    IPv4 keeps the first two octets, IPv6 keeps the first four groups.

    Example:
        >>> mask_ip('192.168.1.100')
        '192.168.xxx.xxx'
        >>> mask_ip('2001:db8::1')
        '2001:0db8:0000:0000:xxxx:xxxx:xxxx:xxxx'
    """
    if not ip:
        return 'unknown'
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return 'invalid'

    if address.version == 4:
        octets = address.exploded.split('.')
        return f'{octets[0]}.{octets[1]}.xxx.xxx'
    groups = address.exploded.split(':')
    return ':'.join(groups[:4]) + ':xxxx:xxxx:xxxx:xxxx'


def start_of_day(moment: datetime | None = None) -> datetime:
    """Compute the first moment (00:00:00 UTC) of the UTC day containing `moment`

    Example:
        >>> start_of_day(datetime(2026, 3, 1, 23, 59, tzinfo=UTC))
        datetime.datetime(2026, 3, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    moment = (moment or datetime.now(UTC)).astimezone(UTC)
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def require_environment(*names: str) -> Callable:
    """Decorator ensuring required environment variables are present.

    Raises:
        KeyError:
            If any required environment variable is missing or empty.

    Example:
        >>> @require_environment('APPCONFIG_APP_ID')
        ... def my_function():
        ...     pass
        >>> my_function()
        KeyError: "Missing required environment variables: 'APPCONFIG_APP_ID'"
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            missing = [name for name in names if not os.environ.get(name)]
            if missing:
                missing_list = ', '.join(f"'{name}'" for name in missing)
                raise KeyError(f'Missing required environment variables: {missing_list}')
            return func(*args, **kwargs)

        return wrapper

    return decorator


def guarantee_fallback_response(fallback: Callable[[], dict]) -> Callable:
    """Decorator: answer with `fallback()` when a lambda handler raises

    Anonymous scanners must never see a stack trace or a 5xx, so any exception
    escaping the handler is logged and replaced by the fallback response.
    When running locally the exception is re-raised for debugging.

    Example:
        >>> @guarantee_fallback_response(response_404)
        ... def lambda_handler(event, context):
        ...     raise RuntimeError('boom')
        >>> lambda_handler({}, None)['statusCode']
        404
    """

    def decorator(handler: Callable) -> Callable:
        @functools.wraps(handler)
        def wrapper(event, context, *args, **kwargs):
            try:
                return handler(event, context, *args, **kwargs)
            except Exception:
                if running_locally():
                    raise
                logger.exception(
                    'Unhandled exception in lambda handler. Responding with fallback response.',
                    extra={'event': 'UNHANDLED_EXCEPTION', 'handler': handler.__module__},
                )
                return fallback()

        return wrapper

    return decorator
