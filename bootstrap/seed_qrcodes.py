#!/usr/bin/env python3
"""
Seed QR codes into Redis from a local YAML file.

This script follows this procedure to publish QR codes:
- Step 1: Load and validate the YAML document
- Step 2: Build one QRCodeModel per entry under `qrcodes:`
- Step 3: Insert each QR code through QRCodeRedisDAO (same key layout as the lambdas)

CLI usage:
    $ python -m bootstrap.seed_qrcodes --file bootstrap/qrcodes.example.yaml --app-name qrhub --env local
    $ python -m bootstrap.seed_qrcodes --file qrcodes.yaml --app-name qrhub --env dev --redis-host redis.dev --dry-run
    $ python -m bootstrap.seed_qrcodes --file qrcodes.yaml --app-name qrhub --skip-existing

YAML format:
    qrcodes:
      - id: qr-menu
        business_id: biz-1
        website_id: web-1
        name: Lunch menu
        target_url: https://example.com/menu
        short_code: abc12345
        status: active          # optional (active | inactive | archived)

Behavior:
    - Keys are namespaced with <app name>:<env>, exactly like app_prefix() in the lambdas.
    - Without --skip-existing, an already existing id or short code aborts the run.

Raises:
    FileNotFoundError: If --file does not exist.
    ValueError: For unexpected YAML structure or invalid QR code fields.
    qrhub.dao.exceptions.DataStoreError: If Redis is unreachable.
"""

import argparse
import dataclasses
import pathlib
from typing import Any

import yaml

from qrhub.models import QRCodeModel
from qrhub.dao.redis import QRCodeRedisDAO
from qrhub.dao.exceptions import QRCodeAlreadyExistsError


QRCODE_FIELDS = frozenset(field.name for field in dataclasses.fields(QRCodeModel))


def load_qrcodes(path: pathlib.Path) -> list[QRCodeModel]:
    """Load and validate QR code definitions from a YAML file.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the document or any entry is malformed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"QR code file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        doc = yaml.safe_load(f) or {}

    entries = doc.get("qrcodes") if isinstance(doc, dict) else None
    if not isinstance(entries, list):
        raise ValueError(f"'qrcodes' section must be a list in {path}")

    qrcodes = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ValueError(f"Entry #{index} in {path} must be a mapping")
        unknown = set(entry) - QRCODE_FIELDS
        if unknown:
            raise ValueError(f"Entry #{index} in {path} has unknown fields: {', '.join(sorted(unknown))}")
        try:
            qrcodes.append(QRCodeModel(**_coerce(entry)))
        except TypeError as e:
            # missing required fields
            raise ValueError(f"Entry #{index} in {path} is incomplete: {e}") from e
    return qrcodes


def _coerce(entry: dict[str, Any]) -> dict[str, Any]:
    # YAML reads ids and codes like 12345678 as ints
    return {key: str(value) if key in {"id", "business_id", "website_id", "short_code"} else value for key, value in entry.items()}


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        int: number of QR codes inserted (or previewed with --dry-run).
    """
    parser = argparse.ArgumentParser(
        prog="seed_qrcodes.py",
        description="Insert QR codes from a YAML file into the Redis data store",
    )
    parser.add_argument("--file", required=True, help="YAML file with a top-level 'qrcodes:' list")
    parser.add_argument("--app-name", required=True, help="Application name for the key prefix (e.g., qrhub)")
    parser.add_argument("--env", default="local", help="Application environment for the key prefix (default: local)")
    parser.add_argument("--redis-host", default="localhost", help="Redis host (default: localhost)")
    parser.add_argument("--redis-port", type=int, default=6379, help="Redis port (default: 6379)")
    parser.add_argument("--redis-db", type=int, default=0, help="Redis database index (default: 0)")
    parser.add_argument("--redis-username", default=None, help="Redis username (if required)")
    parser.add_argument("--redis-password", default=None, help="Redis password (if required)")
    parser.add_argument("--skip-existing", action="store_true", help="Skip QR codes whose id or short code already exists")
    parser.add_argument("--dry-run", action="store_true", help="Validate and preview without writing to Redis")

    args = parser.parse_args(argv)

    qrcodes = load_qrcodes(pathlib.Path(args.file))
    prefix = f"{args.app_name}:{args.env.lower()}"

    if args.dry_run:
        for qr_code in qrcodes:
            print("[DRY-RUN]", f"{prefix} {qr_code.id} /s/{qr_code.short_code} -> {qr_code.target_url}")
        print(f"Done. Previewed {len(qrcodes)} QR codes.")
        return len(qrcodes)

    dao = QRCodeRedisDAO(
        redis_host=args.redis_host,
        redis_port=args.redis_port,
        redis_db=args.redis_db,
        redis_username=args.redis_username,
        redis_password=args.redis_password,
        prefix=prefix,
    )

    writes = 0
    for qr_code in qrcodes:
        try:
            dao.insert(qr_code)
        except QRCodeAlreadyExistsError as e:
            if not args.skip_existing:
                raise
            print(f"{qr_code.id} [skipped] ({e})")
            continue
        print(f"{qr_code.id} /s/{qr_code.short_code} [created]")
        writes += 1

    print(f"Done. Wrote {writes} QR codes.")
    return writes


if __name__ == "__main__":
    main()
