"""Merge per-cluster global CIDR claims into a :class:`NetworkRegistry`."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List

from .models import ClusterAllocation, NetworkRegistry, normalise_cidrs


def upsert(
    registry: NetworkRegistry, cluster_id: str, cidrs: Iterable[str]
) -> NetworkRegistry:
    """Return a copy of ``registry`` with ``cluster_id`` claiming ``cidrs``.

    An existing entry keeps its position and only has its CIDRs replaced.
    Unknown clusters are appended so allocations stay in first-seen order
    rather than being sorted.  ``registry`` itself is never modified, which
    makes the call idempotent: applying the same claim twice yields an equal
    registry.

    Parameters
    ----------
    registry:
        Current registry value, typically freshly fetched from the store.
    cluster_id:
        Identifier of the joining (or re-allocating) cluster.
    cidrs:
        Prefixes claimed by the cluster.  Each must be a valid CIDR.
    """

    if not cluster_id:
        raise ValueError("cluster_id cannot be empty")

    claimed = normalise_cidrs(cidrs)
    allocations: List[ClusterAllocation] = []
    found = False
    for allocation in registry.allocations:
        if allocation.cluster_id == cluster_id:
            allocation = ClusterAllocation(cluster_id=cluster_id, global_cidrs=claimed)
            found = True
        allocations.append(allocation)

    if not found:
        allocations.append(ClusterAllocation(cluster_id=cluster_id, global_cidrs=claimed))

    return replace(registry, allocations=tuple(allocations))
