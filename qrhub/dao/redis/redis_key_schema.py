import functools
from collections.abc import Callable


__all__ = ['RedisKeySchema']  # hide internal decorator prefix_key from imports


def prefix_key(func: Callable) -> Callable:
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs) -> str:
        key = func(self, *args, **kwargs)
        return f'{self.prefix}:{key}' if self.prefix is not None else key

    return wrapper


class RedisKeySchema:
    """Provide standardized Redis keys for QR codes and scan events.

    An optional prefix can be provided to namespace all generated keys.
    It is highly encouraged to set a custom prefix for each app and environment,
    e.g. "qrhub:prod" or "qrhub:dev".

    Layout:
        qrcodes:<id>                                  HASH  QR code fields and cached counters
        qrcodes:shortcodes:<short code>               STR   short code (lower-case) -> QR code id
        qrcodes:<id>:scans                            ZSET  scan id scored by scan timestamp
        qrcodes:<id>:scans:ips:<ip>                   ZSET  same, per client IP (rate limiting)
        qrcodes:<id>:scans:fingerprints:<fingerprint> ZSET  same, per fingerprint (uniqueness)
        scans:<id>                                    HASH  scan event fields
    """

    def __init__(self, prefix: str | None = None):
        if prefix is not None and not isinstance(prefix, str):
            raise TypeError(f'Prefix must be of type string (given type: {type(prefix)}).')

        self.prefix = prefix

    @prefix_key
    def qrcode_key(self, qr_code_id: str) -> str:
        return f'qrcodes:{qr_code_id}'

    @prefix_key
    def short_code_key(self, short_code: str) -> str:
        return f'qrcodes:shortcodes:{short_code.lower()}'

    @prefix_key
    def qrcode_scans_key(self, qr_code_id: str) -> str:
        return f'qrcodes:{qr_code_id}:scans'

    @prefix_key
    def ip_scans_key(self, qr_code_id: str, ip: str) -> str:
        return f'qrcodes:{qr_code_id}:scans:ips:{ip}'

    @prefix_key
    def fingerprint_scans_key(self, qr_code_id: str, fingerprint: str) -> str:
        return f'qrcodes:{qr_code_id}:scans:fingerprints:{fingerprint}'

    @prefix_key
    def scan_key(self, scan_id: str) -> str:
        return f'scans:{scan_id}'
