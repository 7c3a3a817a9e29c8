from qrhub.utils.config import app_env, app_name, app_prefix, load_config, redis_kwargs, ScanSettings
from qrhub.utils.helpers import base_url, client_ip, mask_ip, start_of_day, require_environment
from qrhub.utils.logging import initialize_logging, flush_logging


__all__ = [
    'app_env',
    'app_name',
    'app_prefix',
    'load_config',
    'redis_kwargs',
    'ScanSettings',
    'base_url',
    'client_ip',
    'mask_ip',
    'start_of_day',
    'require_environment',
    'initialize_logging',
    'flush_logging',
]
