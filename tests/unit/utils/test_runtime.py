"""Unit tests for runtime detection in runtime.py.

Test coverage includes:

1. running_locally() for the APP_ENV values QRHub deploys with
2. `sam local` detection through AWS_SAM_LOCAL
3. Local runs surface handler errors instead of the 404 fallback
"""

import pytest

from qrhub.utils.runtime import running_locally
from qrhub.utils.helpers import guarantee_fallback_response
from qrhub.utils.constants import APP_ENV_ENV, AWS_SAM_LOCAL_ENV


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(APP_ENV_ENV, raising=False)
    monkeypatch.delenv(AWS_SAM_LOCAL_ENV, raising=False)


# -------------------------------
# 1. APP_ENV
# -------------------------------


@pytest.mark.parametrize('app_env', ['local', 'LOCAL', ' Local '])
def test_running_locally_with_local_app_env(monkeypatch, app_env):
    monkeypatch.setenv(APP_ENV_ENV, app_env)
    assert running_locally() is True


@pytest.mark.parametrize('app_env', ['dev', 'test', 'staging', 'prod', ''])
def test_running_in_aws(monkeypatch, app_env):
    monkeypatch.setenv(APP_ENV_ENV, app_env)
    assert running_locally() is False


def test_running_without_app_env():
    assert running_locally() is False


# -------------------------------
# 2. sam local
# -------------------------------


def test_running_under_sam_local(monkeypatch):
    # sam local keeps the deployed APP_ENV
    monkeypatch.setenv(APP_ENV_ENV, 'prod')
    monkeypatch.setenv(AWS_SAM_LOCAL_ENV, 'true')

    assert running_locally() is True


@pytest.mark.parametrize('flag', ['false', '1', 'True'])
def test_other_sam_local_flags_are_ignored(monkeypatch, flag):
    monkeypatch.setenv(APP_ENV_ENV, 'dev')
    monkeypatch.setenv(AWS_SAM_LOCAL_ENV, flag)

    assert running_locally() is False


# -------------------------------
# 3. Handler fallback
# -------------------------------


@guarantee_fallback_response(lambda: {'statusCode': 404})
def broken_handler(event, context):
    raise RuntimeError('redis client misconfigured')


def test_deployed_handler_answers_with_fallback(monkeypatch):
    monkeypatch.setenv(APP_ENV_ENV, 'prod')
    assert broken_handler({}, None) == {'statusCode': 404}


def test_local_handler_reraises(monkeypatch):
    monkeypatch.setenv(AWS_SAM_LOCAL_ENV, 'true')

    with pytest.raises(RuntimeError, match='misconfigured'):
        broken_handler({}, None)
