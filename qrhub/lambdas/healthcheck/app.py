import json
from datetime import datetime, UTC
from typing import Any

from qrhub.lambdas.healthcheck.constants import SERVICE_NAME, HEALTHY_MESSAGE


def lambda_handler(event: dict, context: Any) -> dict:
    """Liveness check (GET /s/health). Touches no store, always 200."""
    return {
        'statusCode': 200,
        'headers': {
            'Content-Type': 'application/json',
            'Cache-Control': 'no-store',
        },
        'body': json.dumps(
            {
                'success': True,
                'service': SERVICE_NAME,
                'message': HEALTHY_MESSAGE,
                'timestamp': datetime.now(UTC).isoformat(),
            }
        ),
    }
