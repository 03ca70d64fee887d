#!/usr/bin/env python3
"""Check an exported endpoint list for overlapping CIDRs without a cluster."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from meshnet.models import EndpointRecord, endpoint_from_resource  # noqa: E402
from meshnet.overlap import detect_overlaps, success_message  # noqa: E402


LOG = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "endpoints",
        type=Path,
        help="JSON file, e.g. 'kubectl get endpoints.submariner.io -o json' output",
    )
    parser.add_argument(
        "--globalnet",
        action="store_true",
        help="Report success using the globalnet wording",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args()


def load_endpoints(path: Path) -> List[EndpointRecord]:
    with path.open() as fh:
        payload: Dict[str, Any] = json.load(fh)
    return [endpoint_from_resource(item) for item in payload.get("items", [])]


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    endpoints = load_endpoints(args.endpoints)
    LOG.info("loaded %d endpoints from %s", len(endpoints), args.endpoints)

    result = detect_overlaps(endpoints)
    for issue in result.issues:
        print(f"[check_overlaps] FAILURE: {issue.message}", file=sys.stderr)
    if not result.ok:
        return 1

    print(success_message(args.globalnet))
    return 0


if __name__ == "__main__":
    sys.exit(main())
