"""Shared network-allocation registry for a multi-cluster network mesh.

Clusters joining the mesh each claim global CIDR ranges that must never
overlap with the ranges or advertised subnets of another cluster.  This
package keeps the pieces that reason about those claims free of any
Kubernetes dependency:

* :mod:`meshnet.models` describes registries, allocations, endpoints and
  report issues;
* :mod:`meshnet.codec` flattens a registry into the string-only fields of a
  ConfigMap and back;
* :mod:`meshnet.allocator` merges one cluster's claim into a registry;
* :mod:`meshnet.overlap` finds pairwise conflicts between endpoint
  advertisements; and
* :mod:`meshnet.store` persists the registry through a pluggable backend.

The runtime that drives these against live clusters lives in ``meshctl``.
"""

from .allocator import upsert  # noqa: F401
from .models import (  # noqa: F401
    ClusterAllocation,
    EndpointRecord,
    Issue,
    IssueKind,
    NetworkRegistry,
    Severity,
)
from .overlap import detect_overlaps  # noqa: F401
from .report import Report  # noqa: F401
from .store import RegistryStore  # noqa: F401

__all__ = [
    "ClusterAllocation",
    "EndpointRecord",
    "Issue",
    "IssueKind",
    "NetworkRegistry",
    "RegistryStore",
    "Report",
    "Severity",
    "detect_overlaps",
    "upsert",
]
