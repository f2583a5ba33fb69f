#!/usr/bin/env python3
"""Create sample catalog products via the storefront admin API.

Flow:
1) Login as admin (X-Admin-Login: true)
2) Create each sample product; barcodes that already exist are skipped
"""

from __future__ import annotations

import argparse
import os
import sys

from storefront.client.api import DEFAULT_BASE_URL, ClientError, StorefrontClient
from storefront.client.seed import seed_catalog


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed sample products via the storefront admin API")
    parser.add_argument("--base-url", default=os.getenv("STOREFRONT_BASE_URL", DEFAULT_BASE_URL))
    parser.add_argument("--admin-email", default=os.getenv("STOREFRONT_ADMIN_EMAIL", "admin@example.com"))
    parser.add_argument("--admin-password", default=os.getenv("STOREFRONT_ADMIN_PASSWORD", "CHANGE_ME"))
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    if args.admin_password == "CHANGE_ME":
        print("ERROR: Set --admin-password or STOREFRONT_ADMIN_PASSWORD", file=sys.stderr)
        return 2

    with StorefrontClient(args.base_url.rstrip("/")) as client:
        client.login(args.admin_email, args.admin_password, admin=True)
        result = seed_catalog(client)

    print(f"Created: {', '.join(result['created']) or '-'}")
    print(f"Skipped (already present): {', '.join(result['skipped']) or '-'}")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except ClientError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        raise SystemExit(1)
