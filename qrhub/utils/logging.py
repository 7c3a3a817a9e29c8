"""Application-wide logging initialization

IMPORTANT: Call `initialize_logging()` in the lambda handler's `__init__.py` file
before any other logging is done, and `flush_logging()` before the handler returns.

Logging format:
{
    "timestamp": "2026-03-01T12:00:00.000Z",
    "level": "INFO",
    "logger": "qrhub.scanning.orchestrator",
    "message": "Scan recorded.",
    "event": "SCAN_RECORDED",
    "ip": "203.0.xxx.xxx"
}

Client IPs must never be logged in full: pass them through `mask_ip()` first.
The formatter masks any full address left in an IP field as a last resort.
"""

import os
import json
import logging
import logging.config
import ipaddress
from datetime import datetime, UTC
from typing import Any

from qrhub.utils.constants import LOG_LEVEL_ENV
from qrhub.utils.helpers import mask_ip


def _redact_ip(value: Any) -> Any:
    try:
        ipaddress.ip_address(value)
    except (TypeError, ValueError):
        return value
    return mask_ip(value)


class JsonFormatter(logging.Formatter):
    """JSON formatter that includes LogRecord extras and exception tracebacks"""

    STANDARD_ATTRS = frozenset(
        {
            'args',
            'asctime',
            'created',
            'exc_info',
            'exc_text',
            'filename',
            'funcName',
            'levelname',
            'levelno',
            'lineno',
            'module',
            'msecs',
            'message',
            'msg',
            'name',
            'pathname',
            'process',
            'processName',
            'relativeCreated',
            'stack_info',
            'thread',
            'threadName',
            'taskName',
        }
    )

    IP_FIELDS = frozenset({'ip', 'clientIp', 'sourceIp'})

    def format(self, record: logging.LogRecord) -> str:
        # fmt: off
        timestamp = datetime.fromtimestamp(record.created, tz=UTC) \
                            .isoformat(timespec='milliseconds') \
                            .replace('+00:00', 'Z')
        # fmt: on

        log = {
            'timestamp': timestamp,
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        # Attach `extra` fields
        for key, value in record.__dict__.items():
            if key in self.STANDARD_ATTRS:
                continue
            log[key] = _redact_ip(value) if key in self.IP_FIELDS else value

        if record.exc_info:
            log['exception'] = self.formatException(record.exc_info)

        return json.dumps(log, default=str)


def initialize_logging() -> None:
    log_level = os.getenv(LOG_LEVEL_ENV, 'INFO').upper()
    logging.config.dictConfig(
        {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'json': {
                    '()': JsonFormatter,
                }
            },
            'handlers': {
                'stdout': {
                    'class': 'logging.StreamHandler',
                    'formatter': 'json',
                    'stream': 'ext://sys.stdout',
                }
            },
            'root': {
                'level': log_level,
                'handlers': ['stdout'],
            },
        }
    )


def flush_logging() -> None:
    """Flush root handlers so buffered records reach CloudWatch before the invocation freezes."""
    for handler in logging.getLogger().handlers:
        handler.flush()
