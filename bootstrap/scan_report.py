#!/usr/bin/env python3
"""
Print scan statistics for QR codes straight from the Redis scan history.

This script follows this procedure for every --qr-code-id:
- Step 1: Load the scan events in [--since, --until] through ScanEventRedisDAO
- Step 2: Optionally re-resolve scans stored with an Unknown location (--relocate-unknown)
- Step 3: Aggregate totals, uniques and day/hour/country/city/device breakdowns

CLI usage:
    $ python -m bootstrap.scan_report --app-name qrhub --env dev --redis-host redis.dev --qr-code-id qr-menu
    $ python -m bootstrap.scan_report --app-name qrhub --qr-code-id qr-menu --qr-code-id qr-flyer --since 2026-03-01
    $ python -m bootstrap.scan_report --app-name qrhub --qr-code-id qr-menu --relocate-unknown --json

Behavior:
    - Keys are namespaced with <app name>:<env>, exactly like app_prefix() in the lambdas.
    - Read-only: --relocate-unknown only corrects the printed report. Stored scan
      events are immutable and keep the location recorded at scan time.
    - Relocation uses the ip-api.com batch endpoint, at most 100 IPs per request.

Raises:
    ValueError: For malformed --since / --until dates.
    qrhub.dao.exceptions.DataStoreError: If Redis is unreachable.
"""

import argparse
import dataclasses
import json
from datetime import datetime, UTC

from qrhub.models import ScanEventModel, UNKNOWN
from qrhub.dao.redis import ScanEventRedisDAO
from qrhub.scanning.geolocation import GeolocationResolver
from qrhub.scanning.stats import ScanStats, aggregate_scans, compute_scan_stats
from qrhub.utils.constants import UNKNOWN_IP_ADDRESS


BATCH_SIZE = 100  # ip-api.com batch limit


def parse_moment(value: str) -> datetime:
    """Parse an ISO date or datetime; naive values are taken as UTC."""
    moment = datetime.fromisoformat(value)
    return moment if moment.tzinfo else moment.replace(tzinfo=UTC)


def relocate_unknown(events: list[ScanEventModel], resolver: GeolocationResolver) -> tuple[list[ScanEventModel], int]:
    """Re-resolve the location of scans recorded while geolocation was down.

    Returns:
        tuple[list[ScanEventModel], int]: events with corrected locations, and how many were corrected.
    """
    ips = sorted({e.ip_address for e in events if e.geo.country == UNKNOWN and e.ip_address != UNKNOWN_IP_ADDRESS})

    locations = {}
    for start in range(0, len(ips), BATCH_SIZE):
        chunk = ips[start:start + BATCH_SIZE]
        locations.update(zip(chunk, resolver.resolve_batch(chunk)))

    relocated = 0
    result = []
    for event in events:
        geo = locations.get(event.ip_address) if event.geo.country == UNKNOWN else None
        if geo is not None and geo.country != UNKNOWN:
            event = dataclasses.replace(event, geo=geo)
            relocated += 1
        result.append(event)
    return result, relocated


def print_stats(stats: ScanStats, relocated: int | None = None) -> None:
    print(f"{stats.qr_code_id}: {stats.total} scans ({stats.unique} unique, {stats.repeat} repeat)")
    if not stats.total:
        return
    print(f"  first scan: {stats.first_scan_at.isoformat()}")
    print(f"  last scan:  {stats.last_scan_at.isoformat()}")
    for title, breakdown in (("days", stats.by_day), ("countries", stats.by_country), ("cities", stats.by_city), ("devices", stats.by_device)):
        print(f"  {title}: " + ", ".join(f"{key}={count}" for key, count in breakdown.items()))
    if relocated is not None:
        print(f"  relocated: {relocated} scans with an Unknown location")


def main(argv: list[str] | None = None) -> list[ScanStats]:
    """CLI entry point.

    Returns:
        list[ScanStats]: one entry per --qr-code-id, in argument order.
    """
    parser = argparse.ArgumentParser(
        prog="scan_report.py",
        description="Print scan statistics of QR codes from the Redis scan history",
    )
    parser.add_argument("--qr-code-id", action="append", required=True, help="QR code id (repeat for several codes)")
    parser.add_argument("--app-name", required=True, help="Application name for the key prefix (e.g., qrhub)")
    parser.add_argument("--env", default="local", help="Application environment for the key prefix (default: local)")
    parser.add_argument("--redis-host", default="localhost", help="Redis host (default: localhost)")
    parser.add_argument("--redis-port", type=int, default=6379, help="Redis port (default: 6379)")
    parser.add_argument("--redis-db", type=int, default=0, help="Redis database index (default: 0)")
    parser.add_argument("--redis-username", default=None, help="Redis username (if required)")
    parser.add_argument("--redis-password", default=None, help="Redis password (if required)")
    parser.add_argument("--since", type=parse_moment, default=None, help="Only scans at or after this ISO date/datetime (UTC)")
    parser.add_argument("--until", type=parse_moment, default=None, help="Only scans at or before this ISO date/datetime (UTC)")
    parser.add_argument("--relocate-unknown", action="store_true", help="Re-resolve Unknown locations with the batch geolocation API")
    parser.add_argument("--json", action="store_true", help="Print one JSON document instead of text")

    args = parser.parse_args(argv)

    scan_dao = ScanEventRedisDAO(
        redis_host=args.redis_host,
        redis_port=args.redis_port,
        redis_db=args.redis_db,
        redis_username=args.redis_username,
        redis_password=args.redis_password,
        prefix=f"{args.app_name}:{args.env.lower()}",
    )

    reports = []
    if args.relocate_unknown:
        with GeolocationResolver() as resolver:
            for qr_code_id in args.qr_code_id:
                events = scan_dao.find_by_qr_code(qr_code_id, since=args.since, until=args.until)
                events, relocated = relocate_unknown(events, resolver)
                reports.append((aggregate_scans(qr_code_id, events), relocated))
    else:
        for qr_code_id in args.qr_code_id:
            reports.append((compute_scan_stats(scan_dao, qr_code_id, since=args.since, until=args.until), None))

    if args.json:
        print(json.dumps([stats.to_dict() for stats, _ in reports], indent=2))
    else:
        for stats, relocated in reports:
            print_stats(stats, relocated)

    return [stats for stats, _ in reports]


if __name__ == "__main__":
    main()
