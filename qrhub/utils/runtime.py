"""Runtime utilities

A QRHub lambda runs "locally" under `sam local` (AWS_SAM_LOCAL=true) or when
APP_ENV is 'local'. Local runs read configuration from the AppConfig agent and
let handler exceptions surface instead of answering with the 404 page.

Functions:
    running_locally() -> bool
"""

import os

from qrhub.utils.constants import APP_ENV_ENV, AWS_SAM_LOCAL_ENV


def running_locally() -> bool:
    """Check if the scan lambdas run outside of AWS

    Example:
        >>> os.environ['APP_ENV'] = 'Local'
        >>> running_locally()
        True
        >>> os.environ['APP_ENV'] = 'prod'
        >>> running_locally()
        False
    """
    if os.getenv(AWS_SAM_LOCAL_ENV) == 'true':
        return True
    return os.getenv(APP_ENV_ENV, '').strip().lower() == 'local'
