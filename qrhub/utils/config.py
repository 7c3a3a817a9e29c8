"""Utility functions for application configuration management.

This module provides a standardized interface for Lambda functions to
access configuration data stored in **AWS AppConfig**. Each environment
(`APP_ENV`) has a dedicated AppConfig *Environment* within the shared
AppConfig *Application* identified by `APP_NAME`. Configuration data is
stored as a JSON document under a configuration profile (typically
`backend-config`) and deployed to the corresponding environment.

The configuration JSON follows this structure:

    {
        "build": 7,
        "active_backend": "redis",
        "configs": {
            "scan_redirect": {
                "redis": { "host": "...", "port": 6379, "db": 0 }
            },
            "scan_preview": {
                "redis": { ... }
            }
        },
        "scanning": {
            "rate_limit_max_scans": 10,
            "rate_limit_window_seconds": 60,
            "geolocation_timeout_seconds": 3,
            "fingerprint_bucket": "daily",
            "fingerprint_salt": null,
            "redirect_delay_seconds": 3
        }
    }

Each Lambda loads its own data store section (e.g., `"scan_redirect"`) plus
the shared `"scanning"` section from this AppConfig document.

Functions:
    app_env() -> str
        Return the current application environment (`APP_ENV`) value,
        defaulting to `'local'`.

    app_name() -> str | None
        Return the application name (`APP_NAME`), or None if not set.

    app_prefix() -> str | None
        Return application prefix for DAOs, or None if `APP_NAME` is not set.

    load_config(lambda_name: str) -> dict
        Load configuration for a given Lambda from AWS AppConfig (or from a
        local AppConfig agent when running under SAM).

Classes:
    ScanSettings
        Validated scan pipeline tunables with defaults.

Example:
    Typical usage inside a Lambda handler:

        >>> from qrhub.utils.config import load_config, ScanSettings
        >>> app_config = load_config('scan_redirect')
        >>> app_config['redis']['host']
        'redis-15501.host.docker.internal'
        >>> ScanSettings.from_config(app_config).rate_limit_max_scans
        10
"""

import os
import json
import functools
import urllib.parse
import urllib.request
import logging
from dataclasses import dataclass
from typing import Any, Optional
from collections.abc import Callable

import boto3

from qrhub.exceptions import BadConfigurationError
from qrhub.utils.helpers import require_environment
from qrhub.utils.runtime import running_locally
from qrhub.utils.constants import (
    APP_ENV_ENV,
    APP_NAME_ENV,
    APPCONFIG_APP_ID_ENV,
    APPCONFIG_ENV_ID_ENV,
    APPCONFIG_PROFILE_ID_ENV,
    APPCONFIG_AGENT_URL_ENV,
    APPCONFIG_PROFILE_NAME_ENV,
    DEFAULT_APPCONFIG_PROFILE_NAME,
    DEFAULT_RATE_LIMIT_MAX_SCANS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    DEFAULT_GEOLOCATION_TIMEOUT_SECONDS,
    DEFAULT_GEOLOCATION_PRIMARY_URL,
    DEFAULT_GEOLOCATION_BACKUP_URL,
    DEFAULT_GEOLOCATION_BATCH_URL,
    DEFAULT_FINGERPRINT_BUCKET,
    DEFAULT_REDIRECT_DELAY_SECONDS,
    FINGERPRINT_BUCKETS,
)


logger = logging.getLogger(__name__)


def app_env() -> str:
    """Return the current application environment by reading 'APP_ENV' ('local' by default)"""
    return os.environ.get(APP_ENV_ENV, 'local').lower()


def app_name() -> str | None:
    """Return the current application name by reading 'APP_NAME' (None if not set)"""
    return os.environ.get(APP_NAME_ENV)


def app_prefix() -> str | None:
    """Return application prefix for DAOs

    Returns:
        str: app prefix as <app name>:<app env>.
             None if APP_NAME is not set.

    Example:
        >>> os.environ['APP_NAME'] = 'qrhub'
        >>> os.environ['APP_ENV'] = 'local'
        >>> app_prefix()
        'qrhub:local'
    """
    return None if app_name() is None else f'{app_name()}:{app_env()}'


def _extract_lambda_config(document: dict, lambda_name: str) -> dict:
    """Pick the active backend section of `lambda_name` plus the shared scanning section"""
    backend = document['active_backend']
    return {
        backend: document['configs'][lambda_name][backend],
        'scanning': document.get('scanning') or {},
    }


def _validate_appconfig_agent_url(url: str | None) -> str:
    if not url:
        return ''
    components = urllib.parse.urlparse(url)
    if components.scheme not in {'http', 'https'}:
        raise ValueError(f'Bad scheme {url}')
    if components.hostname not in {'localhost', '127.0.0.1', 'host.docker.internal'}:
        raise ValueError(f'Bad host {url}')
    if components.port not in {2772, None}:
        raise ValueError(f'Bad port {url}')
    return url


def _sam_load_local_appconfig(func: Callable[[str], dict]) -> Callable[[str], dict]:
    """Decorator: load AppConfig from a local AppConfig Agent when running under SAM

    Behavior:
        - If the application is running locally and `APPCONFIG_AGENT_URL` is set
          to a safe local URL, fetch the app configuration JSON from the local AppConfig agent.
        - Else, call the wrapped function (which pulls from AWS AppConfig via boto3).

    Environment variables used:
        APPCONFIG_AGENT_URL     – Base URL of the local AppConfig Agent (e.g., http://host.docker.internal:2772).
        APPCONFIG_PROFILE_NAME  – Optional profile name (default: "backend-config").
    """

    @functools.wraps(func)
    def wrapper(lambda_name: str, *args, **kwargs) -> dict:
        agent_url = _validate_appconfig_agent_url(os.getenv(APPCONFIG_AGENT_URL_ENV))
        if not running_locally() or not agent_url:
            return func(lambda_name, *args, **kwargs)

        profile_name = os.getenv(APPCONFIG_PROFILE_NAME_ENV, DEFAULT_APPCONFIG_PROFILE_NAME)
        url = f'{agent_url}/applications/{app_name()}/environments/{app_env()}/configurations/{profile_name}'

        logger.debug('Trying to load AppConfig from local agent.', extra={'agentUrl': url, 'lambdaName': lambda_name})
        with urllib.request.urlopen(url, timeout=5) as r:  # noqa: S310
            document = json.load(r)

        data = _extract_lambda_config(document, lambda_name)
        logger.debug('Loaded AppConfig from local agent.', extra={'lambdaName': lambda_name, 'build': document.get('build')})
        return data

    return wrapper


@_sam_load_local_appconfig
@require_environment(APPCONFIG_APP_ID_ENV, APPCONFIG_ENV_ID_ENV, APPCONFIG_PROFILE_ID_ENV)
def load_config(lambda_name: str) -> dict:
    """Load configuration for a given Lambda from AWS AppConfig

    Environment variables required:
        APPCONFIG_APP_ID       – AppConfig Application ID
        APPCONFIG_ENV_ID       – AppConfig Environment ID
        APPCONFIG_PROFILE_ID   – AppConfig Configuration Profile ID

    Args:
        lambda_name (str):
            Name of the Lambda (e.g., "scan_redirect" or "scan_preview").

    Returns:
        dict: {"<backend>": {...}, "scanning": {...}}

    Raises:
        KeyError:
            If a required environment variable or document section is missing.
        botocore.exceptions.ClientError:
            If AppConfig can't be reached.
    """
    logger.debug('Trying to load AppConfig from AWS AppConfig.', extra={'lambdaName': lambda_name})

    appconfig = boto3.client('appconfigdata')

    # Start an AppConfig data session
    session_token = appconfig.start_configuration_session(
        ApplicationIdentifier=os.environ[APPCONFIG_APP_ID_ENV],
        EnvironmentIdentifier=os.environ[APPCONFIG_ENV_ID_ENV],
        ConfigurationProfileIdentifier=os.environ[APPCONFIG_PROFILE_ID_ENV],
    )['InitialConfigurationToken']

    # Fetch the configuration
    response = appconfig.get_latest_configuration(ConfigurationToken=session_token)
    content = response['Configuration'].read()
    document = json.loads(content.decode('utf-8'))

    data = _extract_lambda_config(document, lambda_name)
    logger.debug('Loaded AppConfig from AWS AppConfig.', extra={'lambdaName': lambda_name, 'build': document.get('build')})
    return data


def redis_kwargs(app_config: dict[str, Any]) -> dict[str, Any]:
    """Translate the `redis` config section into RedisClientMixin keyword arguments

    Example:
        >>> redis_kwargs({'redis': {'host': 'redis', 'port': 6379}})
        {'redis_host': 'redis', 'redis_port': 6379}
    """
    return {f'redis_{k}': v for k, v in (app_config.get('redis') or {}).items()}


@dataclass(frozen=True)
class ScanSettings:
    """Tunables of the scan pipeline, read from the `scanning` AppConfig section"""

    rate_limit_max_scans: int = DEFAULT_RATE_LIMIT_MAX_SCANS
    rate_limit_window_seconds: int = DEFAULT_RATE_LIMIT_WINDOW_SECONDS
    geolocation_timeout_seconds: float = DEFAULT_GEOLOCATION_TIMEOUT_SECONDS
    geolocation_primary_url: str = DEFAULT_GEOLOCATION_PRIMARY_URL
    geolocation_backup_url: str = DEFAULT_GEOLOCATION_BACKUP_URL
    geolocation_batch_url: str = DEFAULT_GEOLOCATION_BATCH_URL
    fingerprint_bucket: str = DEFAULT_FINGERPRINT_BUCKET
    fingerprint_salt: Optional[str] = None
    redirect_delay_seconds: int = DEFAULT_REDIRECT_DELAY_SECONDS

    @classmethod
    def from_config(cls, app_config: dict[str, Any] | None) -> 'ScanSettings':
        """Build settings from a loaded lambda config, applying defaults for missing keys

        Raises:
            BadConfigurationError:
                If a value has the wrong type or is out of range.
        """
        section = (app_config or {}).get('scanning') or {}
        unknown = set(section) - set(cls.__dataclass_fields__)
        if unknown:
            logger.warning('Ignoring unknown scanning configuration keys.', extra={'keys': sorted(unknown)})

        try:
            # fmt: off
            settings = cls(
                rate_limit_max_scans=int(section.get('rate_limit_max_scans', DEFAULT_RATE_LIMIT_MAX_SCANS)),
                rate_limit_window_seconds=int(section.get('rate_limit_window_seconds', DEFAULT_RATE_LIMIT_WINDOW_SECONDS)),
                geolocation_timeout_seconds=float(section.get('geolocation_timeout_seconds', DEFAULT_GEOLOCATION_TIMEOUT_SECONDS)),
                geolocation_primary_url=str(section.get('geolocation_primary_url', DEFAULT_GEOLOCATION_PRIMARY_URL)),
                geolocation_backup_url=str(section.get('geolocation_backup_url', DEFAULT_GEOLOCATION_BACKUP_URL)),
                geolocation_batch_url=str(section.get('geolocation_batch_url', DEFAULT_GEOLOCATION_BATCH_URL)),
                fingerprint_bucket=str(section.get('fingerprint_bucket', DEFAULT_FINGERPRINT_BUCKET)).lower(),
                fingerprint_salt=section.get('fingerprint_salt') or None,
                redirect_delay_seconds=int(section.get('redirect_delay_seconds', DEFAULT_REDIRECT_DELAY_SECONDS)),
            )
            # fmt: on
        except (TypeError, ValueError) as e:
            raise BadConfigurationError(f'Invalid scanning configuration: {e}') from e

        if settings.rate_limit_max_scans < 1:
            raise BadConfigurationError('rate_limit_max_scans must be at least 1.')
        if settings.rate_limit_window_seconds < 1:
            raise BadConfigurationError('rate_limit_window_seconds must be at least 1.')
        if settings.geolocation_timeout_seconds <= 0:
            raise BadConfigurationError('geolocation_timeout_seconds must be positive.')
        if settings.redirect_delay_seconds < 0:
            raise BadConfigurationError('redirect_delay_seconds must not be negative.')
        if settings.fingerprint_bucket not in FINGERPRINT_BUCKETS:
            raise BadConfigurationError(
                f"fingerprint_bucket must be one of {', '.join(FINGERPRINT_BUCKETS)} (given: '{settings.fingerprint_bucket}')."
            )
        return settings
