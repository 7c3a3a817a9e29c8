"""IP geolocation with a primary/backup provider chain

Providers:
    primary: ip-api.com JSON endpoint   GET  <primary_url>/<ip>?fields=...
    backup:  ipapi.co JSON endpoint     GET  <backup_url>/<ip>/json/
    batch:   ip-api.com batch endpoint  POST <batch_url>?fields=...

Resolution never raises: invalid IPs resolve to Unknown, private and loopback
IPs resolve to Local without a network call, and provider failures fall
through to the backup provider and finally to Unknown.

Example:
    >>> with GeolocationResolver(timeout=3.0) as resolver:
    ...     resolver.resolve('8.8.8.8')
    GeoLocation(country='United States', city='Mountain View', region='California', ...)
"""

import ipaddress
import logging
from typing import Any

import httpx

from qrhub.exceptions import UpstreamDegradedError
from qrhub.models import GeoLocation, UNKNOWN
from qrhub.utils.helpers import mask_ip
from qrhub.utils.constants import (
    DEFAULT_GEOLOCATION_TIMEOUT_SECONDS,
    DEFAULT_GEOLOCATION_PRIMARY_URL,
    DEFAULT_GEOLOCATION_BACKUP_URL,
    DEFAULT_GEOLOCATION_BATCH_URL,
)
from qrhub.scanning.constants import (
    GEO_LOCAL_FALLBACK,
    GEO_INVALID_IP,
    GEO_PRIMARY_FAILED,
    GEO_BACKUP_FAILED,
    GEO_UNKNOWN_FALLBACK,
    GEO_BATCH_FAILED,
)


logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = GeoLocation()
LOCAL_LOCATION = GeoLocation(country='Local', city='Local', region=UNKNOWN)

PRIMARY_FIELDS = 'status,message,country,city,regionName,lat,lon'
BATCH_FIELDS = 'status,message,query,country,city,regionName,lat,lon'


def _text(value: Any) -> str:
    return value if isinstance(value, str) and value else UNKNOWN


def _coordinate(value: Any) -> float | None:
    try:
        return None if value is None else float(value)
    except (TypeError, ValueError):
        return None


def _from_ip_api(payload: Any) -> GeoLocation:
    """Translate an ip-api.com record; raises UpstreamDegradedError on failure records"""
    if not isinstance(payload, dict) or payload.get('status') != 'success':
        reason = payload.get('message') if isinstance(payload, dict) else 'malformed body'
        raise UpstreamDegradedError(f'ip-api.com lookup failed ({reason}).')
    return GeoLocation(
        country=_text(payload.get('country')),
        city=_text(payload.get('city')),
        region=_text(payload.get('regionName')),
        latitude=_coordinate(payload.get('lat')),
        longitude=_coordinate(payload.get('lon')),
    )


def _from_ipapi_co(payload: Any) -> GeoLocation:
    """Translate an ipapi.co record; raises UpstreamDegradedError on error records"""
    if not isinstance(payload, dict) or payload.get('error'):
        reason = payload.get('reason') if isinstance(payload, dict) else 'malformed body'
        raise UpstreamDegradedError(f'ipapi.co lookup failed ({reason}).')
    return GeoLocation(
        country=_text(payload.get('country_name')),
        city=_text(payload.get('city')),
        region=_text(payload.get('region')),
        latitude=_coordinate(payload.get('latitude')),
        longitude=_coordinate(payload.get('longitude')),
    )


class GeolocationResolver:
    """Resolve client IPs to coarse locations

    Attributes:
        client (httpx.Client):
            HTTP client with a bounded timeout. A private one is created when
            none is given, and closed by `close()` / the context manager.

    Methods:
        resolve(ip: str) -> GeoLocation
        resolve_batch(ips: list[str]) -> list[GeoLocation]
    """

    def __init__(
        self,
        timeout: float = DEFAULT_GEOLOCATION_TIMEOUT_SECONDS,
        primary_url: str = DEFAULT_GEOLOCATION_PRIMARY_URL,
        backup_url: str = DEFAULT_GEOLOCATION_BACKUP_URL,
        batch_url: str = DEFAULT_GEOLOCATION_BATCH_URL,
        client: httpx.Client | None = None,
        logger: logging.Logger = logger,
    ):
        self.timeout = timeout
        self.primary_url = primary_url.rstrip('/')
        self.backup_url = backup_url.rstrip('/')
        self.batch_url = batch_url
        self.logger = logger
        self._owns_client = client is None
        self.client = client if client is not None else httpx.Client(timeout=timeout)

    def __enter__(self) -> 'GeolocationResolver':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def resolve(self, ip: str | None) -> GeoLocation:
        """Resolve a single IP address. Never raises."""
        address = self._parse(ip)
        if address is None or address.is_unspecified:
            return self._unknown_fallback(ip, reason='invalid ip', event=GEO_INVALID_IP)
        if not address.is_global:
            return self._local_fallback(ip)

        try:
            return self._lookup_primary(str(address))
        except (httpx.HTTPError, ValueError, UpstreamDegradedError) as e:
            self.logger.info(
                'Primary geolocation provider failed. Trying backup provider.',
                extra={'event': GEO_PRIMARY_FAILED, 'ip': mask_ip(ip), 'reason': str(e), 'error': e.__class__.__name__},
            )

        try:
            return self._lookup_backup(str(address))
        except (httpx.HTTPError, ValueError, UpstreamDegradedError) as e:
            self.logger.info(
                'Backup geolocation provider failed.',
                extra={'event': GEO_BACKUP_FAILED, 'ip': mask_ip(ip), 'reason': str(e), 'error': e.__class__.__name__},
            )

        return self._unknown_fallback(ip, reason='all providers failed', event=GEO_UNKNOWN_FALLBACK)

    def resolve_batch(self, ips: list[str]) -> list[GeoLocation]:
        """Resolve many IPs with one primary provider call (double timeout). Never raises.

        The result has one entry per input IP, in input order. Invalid and
        private IPs are answered locally and never sent to the provider.
        """
        results: list[GeoLocation | None] = [None] * len(ips)
        pending: list[tuple[int, str]] = []
        for index, ip in enumerate(ips):
            address = self._parse(ip)
            if address is None or address.is_unspecified:
                results[index] = UNKNOWN_LOCATION
            elif not address.is_global:
                results[index] = LOCAL_LOCATION
            else:
                pending.append((index, str(address)))

        if pending:
            try:
                response = self.client.post(
                    self.batch_url,
                    params={'fields': BATCH_FIELDS},
                    json=[ip for _, ip in pending],
                    timeout=self.timeout * 2,
                )
                response.raise_for_status()
                records = response.json()
                if not isinstance(records, list) or len(records) != len(pending):
                    raise UpstreamDegradedError('ip-api.com batch returned an unexpected body.')
            except (httpx.HTTPError, ValueError, UpstreamDegradedError) as e:
                self.logger.warning(
                    'Batch geolocation failed. Using Unknown for the whole batch.',
                    extra={'event': GEO_BATCH_FAILED, 'size': len(pending), 'reason': str(e), 'error': e.__class__.__name__},
                )
                records = [None] * len(pending)

            for (index, _), record in zip(pending, records):
                try:
                    results[index] = _from_ip_api(record)
                except UpstreamDegradedError:
                    results[index] = UNKNOWN_LOCATION

        return results

    def _lookup_primary(self, ip: str) -> GeoLocation:
        response = self.client.get(f'{self.primary_url}/{ip}', params={'fields': PRIMARY_FIELDS}, timeout=self.timeout)
        response.raise_for_status()
        return _from_ip_api(response.json())

    def _lookup_backup(self, ip: str) -> GeoLocation:
        response = self.client.get(f'{self.backup_url}/{ip}/json/', timeout=self.timeout)
        response.raise_for_status()
        return _from_ipapi_co(response.json())

    def _local_fallback(self, ip: str | None) -> GeoLocation:
        self.logger.debug('Private or loopback IP. Resolving to Local.', extra={'event': GEO_LOCAL_FALLBACK, 'ip': mask_ip(ip)})
        return LOCAL_LOCATION

    def _unknown_fallback(self, ip: str | None, reason: str, event: str = GEO_UNKNOWN_FALLBACK) -> GeoLocation:
        self.logger.info('Geolocation unavailable. Resolving to Unknown.', extra={'event': event, 'ip': mask_ip(ip), 'reason': reason})
        return UNKNOWN_LOCATION

    @staticmethod
    def _parse(ip: str | None) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
        if not ip:
            return None
        try:
            return ipaddress.ip_address(ip.strip())
        except ValueError:
            return None
