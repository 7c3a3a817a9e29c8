import functools
import redis
from datetime import datetime
from typing import TypeVar, Any
from collections.abc import Callable

from qrhub.dao.exceptions import DataStoreError


__all__ = []

F = TypeVar('F', bound=Callable[..., Any])


def _address(dao: Any) -> str:
    info = dao.redis.connection_pool.connection_kwargs
    return f"{info.get('host')}:{info.get('port')}/{info.get('db')}"


def handle_redis_errors[F](method: F) -> F:
    """Wrap Redis-interacting DAO methods to translate Redis errors

    Connection errors and socket timeouts are translated, so a hung Redis node
    surfaces as a DataStoreError after the client's socket timeout. Every other
    RedisError (OOM, READONLY after a failover, WRONGTYPE, aborted transactions)
    is translated as well, so callers only ever handle DAOError.

    Args:
        method (Callable[..., Any]):
            DAO method performing Redis operations which may raise
            redis.exceptions.RedisError.

    Returns:
        Callable[..., Any]:
            Wrapped method which raises DataStoreError on any Redis error.

    Example:
        >>> @handle_redis_errors
        ... def count_recent(self, qr_code_id, ip, since):
        ...     return self.redis.zcount(...)
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as e:
            raise DataStoreError(f"Can't reach Redis at {_address(self)} ({e.__class__.__name__}).") from e
        except redis.exceptions.RedisError as e:
            raise DataStoreError(f'Redis at {_address(self)} failed the command ({e.__class__.__name__}: {e}).') from e

    return wrapper


def encode_hash(fields: dict[str, Any]) -> dict[str, str]:
    """Encode a flat mapping into Redis hash field values

    None values are dropped (HSET can't store them), booleans become '1'/'0',
    datetimes become ISO 8601 strings and everything else is str()-ed.

    Example:
        >>> encode_hash({'total_scans': 3, 'is_active': True, 'deleted_at': None})
        {'total_scans': '3', 'is_active': '1'}
    """
    encoded = {}
    for name, value in fields.items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[name] = '1' if value else '0'
        elif isinstance(value, datetime):
            encoded[name] = value.isoformat()
        else:
            encoded[name] = str(value)
    return encoded


def decode_datetime(value: str | None) -> datetime | None:
    return None if not value else datetime.fromisoformat(value)


def decode_bool(value: str | None, default: bool = False) -> bool:
    return default if value is None else value == '1'


def decode_float(value: str | None) -> float | None:
    return None if value in (None, '') else float(value)
