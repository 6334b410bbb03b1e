#!/usr/bin/env python3
"""CLI utility to verify that the NetGraph API is reachable."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from netgraph.app.utils.api_client import check_api_health


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments for the health check utility."""

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "base_url",
        nargs="?",
        default="http://localhost:8000",
        help="Base URL for the API (default: http://localhost:8000)",
    )
    parser.add_argument("--timeout", type=float, default=5.0, help="Request timeout in seconds")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Return ``0`` when the API answers its health probe, ``1`` otherwise."""

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    args = parse_args(argv)
    result = check_api_health(args.base_url, timeout=args.timeout)
    if result.ok:
        version = (result.payload or {}).get("version", "unknown")
        latency = f"{result.latency_ms:.2f}" if result.latency_ms is not None else "unknown"
        print(f"API reachable status={result.status_code} version={version} latency_ms={latency}")
        return 0
    print("API health check failed:", result.detail, file=sys.stderr)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
