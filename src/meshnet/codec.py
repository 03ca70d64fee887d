"""Flatten a :class:`NetworkRegistry` into string-only record fields.

ConfigMaps only hold string values, so the nested allocation list is stored
as a JSON document under a single key.  Everything that knows about that
textual layout lives here; the allocator and the store only ever see typed
values.

Layout::

    globalnetEnabled      "true" | "false"
    clusterinfo           [{"cluster_id": ..., "global_cidr": [...]}, ...]
    globalnetCidrRange    JSON quoted string (the range wrapped in quotes)
    globalnetClusterSize  decimal string

The range and size keys are only written when globalnet is enabled or when
they carry non-default values, so a disabled registry keeps the short
two-key layout while every registry value still round-trips.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping

from .exceptions import CodecError, InvalidCIDRError
from .models import ClusterAllocation, NetworkRegistry

GLOBALNET_STATUS_KEY = "globalnetEnabled"
CLUSTER_INFO_KEY = "clusterinfo"
GLOBALNET_CIDR_RANGE_KEY = "globalnetCidrRange"
GLOBALNET_CLUSTER_SIZE_KEY = "globalnetClusterSize"


def encode_allocations(allocations) -> str:
    payload: List[Dict[str, Any]] = [
        {"cluster_id": a.cluster_id, "global_cidr": list(a.global_cidrs)}
        for a in allocations
    ]
    return json.dumps(payload, indent="\t")


def decode_allocations(raw: str) -> List[ClusterAllocation]:
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise CodecError(f"malformed {CLUSTER_INFO_KEY} document: {exc}") from exc

    # Older writers emitted ``null`` for an empty list.
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise CodecError(f"{CLUSTER_INFO_KEY} must be a JSON array")

    allocations: List[ClusterAllocation] = []
    for entry in payload:
        if not isinstance(entry, dict) or "cluster_id" not in entry:
            raise CodecError(f"invalid {CLUSTER_INFO_KEY} entry: {entry!r}")
        cidrs = entry.get("global_cidr") or []
        if not isinstance(cidrs, list):
            raise CodecError(
                f"global_cidr for cluster {entry['cluster_id']!r} must be a list"
            )
        try:
            allocations.append(
                ClusterAllocation(
                    cluster_id=str(entry["cluster_id"]),
                    global_cidrs=tuple(str(c) for c in cidrs),
                )
            )
        except (InvalidCIDRError, ValueError) as exc:
            raise CodecError(str(exc)) from exc
    return allocations


def encode(registry: NetworkRegistry) -> Dict[str, str]:
    """Render ``registry`` as a flat ``str -> str`` mapping."""

    data = {
        GLOBALNET_STATUS_KEY: "true" if registry.enabled else "false",
        CLUSTER_INFO_KEY: encode_allocations(registry.allocations),
    }
    if registry.enabled or registry.default_cidr_range or registry.default_cluster_size:
        data[GLOBALNET_CIDR_RANGE_KEY] = json.dumps(registry.default_cidr_range)
        data[GLOBALNET_CLUSTER_SIZE_KEY] = str(registry.default_cluster_size)
    return data


def decode(data: Mapping[str, str]) -> NetworkRegistry:
    """Parse the flat mapping produced by :func:`encode`."""

    if data is None or CLUSTER_INFO_KEY not in data:
        raise CodecError(f"record is missing the '{CLUSTER_INFO_KEY}' field")

    enabled = str(data.get(GLOBALNET_STATUS_KEY, "false")).strip().lower() == "true"

    cidr_range = ""
    raw_range = data.get(GLOBALNET_CIDR_RANGE_KEY)
    if raw_range:
        try:
            cidr_range = json.loads(raw_range)
        except ValueError as exc:
            raise CodecError(f"malformed {GLOBALNET_CIDR_RANGE_KEY}: {exc}") from exc
        if not isinstance(cidr_range, str):
            raise CodecError(f"{GLOBALNET_CIDR_RANGE_KEY} must be a JSON string")

    cluster_size = 0
    raw_size = data.get(GLOBALNET_CLUSTER_SIZE_KEY)
    if raw_size:
        try:
            cluster_size = int(raw_size)
        except ValueError as exc:
            raise CodecError(f"malformed {GLOBALNET_CLUSTER_SIZE_KEY}: {exc}") from exc

    allocations = decode_allocations(data[CLUSTER_INFO_KEY])
    try:
        return NetworkRegistry(
            enabled=enabled,
            default_cidr_range=cidr_range,
            default_cluster_size=cluster_size,
            allocations=tuple(allocations),
        )
    except ValueError as exc:
        raise CodecError(str(exc)) from exc
