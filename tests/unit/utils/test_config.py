"""Unit tests for configuration utilities in config.py

Test coverage includes:

1. Environment variable resolution
   - Ensures app_env(), app_name(), app_prefix() correctly read environment variables.

2. Configuration loading behavior
   - Ensures load_config() returns the lambda's backend section plus the scanning section.
   - Ensures missing AppConfig environment variables raise KeyError.
   - Ensures load_config() raises ClientError when AppConfig calls fail.
   - Ensures the local AppConfig agent URL is validated.

3. Scan settings
   - Defaults apply when the scanning section is missing.
   - Invalid values raise BadConfigurationError.
"""

import json
from io import BytesIO
from unittest.mock import MagicMock

import botocore
import pytest

from qrhub.exceptions import BadConfigurationError
from qrhub.utils import config
from qrhub.utils.config import ScanSettings


# -------------------------------
# Fixtures
# -------------------------------


@pytest.fixture(autouse=True)
def _env(monkeypatch):
    """Set up environment variables for testing."""
    monkeypatch.setenv('APPCONFIG_APP_ID', 'app123')
    monkeypatch.setenv('APPCONFIG_ENV_ID', 'env123')
    monkeypatch.setenv('APPCONFIG_PROFILE_ID', 'prof123')
    monkeypatch.setenv('APP_ENV', 'test')
    monkeypatch.delenv('APPCONFIG_AGENT_URL', raising=False)
    monkeypatch.delenv('AWS_SAM_LOCAL', raising=False)


@pytest.fixture
def appconfig_payload():
    # fmt: off
    return {
        'build': 42,
        'active_backend': 'redis',
        'configs': {
            'scan_redirect': {
                'redis': {'host': 'redis.test', 'port': 6379, 'db': 0},
            },
        },
        'scanning': {
            'rate_limit_max_scans': 5,
            'fingerprint_bucket': 'hourly',
        },
    }
    # fmt: on


@pytest.fixture
def appconfig_client(monkeypatch, appconfig_payload):
    """Patch boto3.client('appconfigdata') to serve `appconfig_payload`."""
    client = MagicMock()
    client.start_configuration_session.return_value = {'InitialConfigurationToken': 'token-1'}
    client.get_latest_configuration.return_value = {'Configuration': BytesIO(json.dumps(appconfig_payload).encode('utf-8'))}
    monkeypatch.setattr(config.boto3, 'client', lambda service: client)
    return client


# -------------------------------
# 1. Environment variable resolution
# -------------------------------


def test_app_env_defaults_to_local(monkeypatch):
    monkeypatch.delenv('APP_ENV', raising=False)
    assert config.app_env() == 'local'


def test_app_env_is_lower_cased(monkeypatch):
    monkeypatch.setenv('APP_ENV', 'PROD')
    assert config.app_env() == 'prod'


def test_app_prefix(monkeypatch):
    monkeypatch.setenv('APP_NAME', 'qrhub')
    monkeypatch.setenv('APP_ENV', 'dev')
    assert config.app_name() == 'qrhub'
    assert config.app_prefix() == 'qrhub:dev'


def test_app_prefix_without_app_name(monkeypatch):
    monkeypatch.delenv('APP_NAME', raising=False)
    assert config.app_prefix() is None


# -------------------------------
# 2. Configuration loading behavior
# -------------------------------


def test_load_config(appconfig_client):
    app_config = config.load_config('scan_redirect')

    assert app_config == {
        'redis': {'host': 'redis.test', 'port': 6379, 'db': 0},
        'scanning': {'rate_limit_max_scans': 5, 'fingerprint_bucket': 'hourly'},
    }
    appconfig_client.start_configuration_session.assert_called_once_with(
        ApplicationIdentifier='app123',
        EnvironmentIdentifier='env123',
        ConfigurationProfileIdentifier='prof123',
    )
    appconfig_client.get_latest_configuration.assert_called_once_with(ConfigurationToken='token-1')


def test_load_config_for_unknown_lambda(appconfig_client):
    with pytest.raises(KeyError):
        config.load_config('does_not_exist')


def test_load_config_with_missing_environment(monkeypatch, appconfig_client):
    monkeypatch.delenv('APPCONFIG_PROFILE_ID')

    with pytest.raises(KeyError, match='APPCONFIG_PROFILE_ID'):
        config.load_config('scan_redirect')
    appconfig_client.start_configuration_session.assert_not_called()


def test_load_config_with_appconfig_failure(monkeypatch):
    client = MagicMock()
    client.start_configuration_session.side_effect = botocore.exceptions.ClientError(
        {'Error': {'Code': 'ResourceNotFoundException', 'Message': 'not found'}}, 'StartConfigurationSession'
    )
    monkeypatch.setattr(config.boto3, 'client', lambda service: client)

    with pytest.raises(botocore.exceptions.ClientError):
        config.load_config('scan_redirect')


def test_redis_kwargs():
    assert config.redis_kwargs({'redis': {'host': 'redis', 'port': 6379}}) == {'redis_host': 'redis', 'redis_port': 6379}
    assert config.redis_kwargs({}) == {}


@pytest.mark.parametrize(
    'url, valid',
    [
        ('http://localhost:2772', True),
        ('http://host.docker.internal:2772', True),
        ('http://127.0.0.1', True),
        ('ftp://localhost:2772', False),
        ('http://evil.example.com:2772', False),
        ('http://localhost:8080', False),
    ],
)
def test_validate_appconfig_agent_url(url, valid):
    if valid:
        assert config._validate_appconfig_agent_url(url) == url
    else:
        with pytest.raises(ValueError):
            config._validate_appconfig_agent_url(url)


def test_load_config_ignores_agent_when_not_local(monkeypatch, appconfig_client):
    monkeypatch.setenv('APPCONFIG_AGENT_URL', 'http://localhost:2772')

    config.load_config('scan_redirect')

    appconfig_client.get_latest_configuration.assert_called_once()


# -------------------------------
# 3. Scan settings
# -------------------------------


def test_scan_settings_defaults():
    settings = ScanSettings.from_config({'redis': {}})

    assert settings == ScanSettings()
    assert settings.rate_limit_max_scans == 10
    assert settings.rate_limit_window_seconds == 60
    assert settings.geolocation_timeout_seconds == 3.0
    assert settings.fingerprint_bucket == 'daily'
    assert settings.fingerprint_salt is None
    assert settings.redirect_delay_seconds == 3


def test_scan_settings_from_config():
    settings = ScanSettings.from_config(
        {
            'scanning': {
                'rate_limit_max_scans': '20',
                'rate_limit_window_seconds': 30,
                'geolocation_timeout_seconds': 1.5,
                'fingerprint_bucket': 'HOURLY',
                'fingerprint_salt': 's3cr3t',
                'redirect_delay_seconds': 0,
            }
        }
    )

    assert settings.rate_limit_max_scans == 20
    assert settings.rate_limit_window_seconds == 30
    assert settings.geolocation_timeout_seconds == 1.5
    assert settings.fingerprint_bucket == 'hourly'
    assert settings.fingerprint_salt == 's3cr3t'
    assert settings.redirect_delay_seconds == 0


@pytest.mark.parametrize(
    'scanning',
    [
        {'rate_limit_max_scans': 0},
        {'rate_limit_max_scans': 'many'},
        {'rate_limit_window_seconds': -1},
        {'geolocation_timeout_seconds': 0},
        {'redirect_delay_seconds': -3},
        {'fingerprint_bucket': 'weekly'},
        {'rate_limit_max_scans': None},
    ],
)
def test_scan_settings_with_bad_values(scanning):
    with pytest.raises(BadConfigurationError):
        ScanSettings.from_config({'scanning': scanning})
