"""Data structures describing mesh allocations and validation results.

These light-weight dataclasses are shared by the registry store, the
allocation updater and the overlap detector.  They are deliberately free of
any Kubernetes types so the merge and detection logic can be exercised in
plain unit tests.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

from .exceptions import InvalidCIDRError


def validate_cidr(cidr: str) -> str:
    """Return ``cidr`` unchanged if it parses as an IPv4 or IPv6 prefix."""

    if not isinstance(cidr, str) or not cidr:
        raise InvalidCIDRError(str(cidr), "empty value")
    if "/" not in cidr:
        raise InvalidCIDRError(cidr, "missing prefix length")
    try:
        ipaddress.ip_network(cidr, strict=False)
    except ValueError as exc:
        raise InvalidCIDRError(cidr, str(exc)) from exc
    return cidr


def normalise_cidrs(cidrs: Iterable[str]) -> Tuple[str, ...]:
    """Validate ``cidrs`` and drop repeats while keeping first-seen order."""

    return tuple(dict.fromkeys(validate_cidr(c) for c in cidrs))


@dataclass(frozen=True)
class ClusterAllocation:
    """Global CIDRs claimed by one cluster.

    Attributes
    ----------
    cluster_id:
        Unique key of the cluster inside :attr:`NetworkRegistry.allocations`.
    global_cidrs:
        The claimed prefixes, de-duplicated in first-seen order.
    """

    cluster_id: str
    global_cidrs: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.cluster_id:
            raise ValueError("cluster_id cannot be empty")
        object.__setattr__(self, "global_cidrs", normalise_cidrs(self.global_cidrs))


@dataclass(frozen=True)
class NetworkRegistry:
    """Mesh-wide allocation state, one instance per broker namespace.

    Attributes
    ----------
    enabled:
        Whether globalnet range allocation is active for the mesh.
    default_cidr_range:
        Mesh-wide pool that per-cluster ranges are carved from.
    default_cluster_size:
        Default number of addresses handed to each joining cluster.
    allocations:
        Claimed ranges in the order clusters first joined.
    """

    enabled: bool = False
    default_cidr_range: str = ""
    default_cluster_size: int = 0
    allocations: Tuple[ClusterAllocation, ...] = ()

    def __post_init__(self) -> None:
        allocations = tuple(self.allocations)
        seen = set()
        for allocation in allocations:
            if allocation.cluster_id in seen:
                raise ValueError(
                    f"duplicate allocation for cluster '{allocation.cluster_id}'"
                )
            seen.add(allocation.cluster_id)
        if self.default_cluster_size < 0:
            raise ValueError("default_cluster_size cannot be negative")
        object.__setattr__(self, "allocations", allocations)

    def allocation_for(self, cluster_id: str) -> Optional[ClusterAllocation]:
        """Return the allocation held by ``cluster_id`` if present."""

        return next(
            (a for a in self.allocations if a.cluster_id == cluster_id), None
        )

    def cluster_ids(self) -> Tuple[str, ...]:
        return tuple(a.cluster_id for a in self.allocations)


@dataclass(frozen=True)
class EndpointRecord:
    """A cluster's advertised reachability record.

    Subnets are kept verbatim; the overlap detector reports unparsable ones
    instead of rejecting the record up front.
    """

    cluster_id: str
    name: str
    subnets: Sequence[str] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "subnets", tuple(self.subnets))


def endpoint_from_resource(resource: Mapping[str, Any]) -> EndpointRecord:
    """Build a record from an endpoint object as served by the API or kubectl."""

    metadata = resource.get("metadata") or {}
    spec = resource.get("spec") or {}
    return EndpointRecord(
        cluster_id=str(spec.get("cluster_id", "")),
        name=str(metadata.get("name", "")),
        subnets=tuple(str(s) for s in spec.get("subnets") or ()),
    )


class Severity(Enum):
    """How an issue affects the overall validation result."""

    WARNING = auto()
    FAILURE = auto()


class IssueKind(Enum):
    DUPLICATE_CLUSTER = auto()
    OVERLAP = auto()
    INVALID_CIDR = auto()
    RESOURCE_MISSING = auto()
    CLUSTER_ERROR = auto()
    DEPLOYMENT = auto()
    DAEMONSET = auto()
    POD = auto()
    RESTARTS = auto()


@dataclass(frozen=True)
class Issue:
    """Single entry of a validation report.

    Attributes
    ----------
    severity:
        Only :attr:`Severity.FAILURE` flips a report to unsuccessful.
    message:
        Human readable description.
    kind:
        Category used by callers and tests to filter issues.
    clusters:
        Cluster IDs the issue refers to, if any.
    subnet:
        The offending subnet for CIDR related issues.
    """

    severity: Severity
    message: str
    kind: Optional[IssueKind] = None
    clusters: Tuple[str, ...] = field(default_factory=tuple)
    subnet: Optional[str] = None

    @property
    def is_failure(self) -> bool:
        return self.severity is Severity.FAILURE

    def involves(self, cluster_id: str) -> bool:
        return cluster_id in self.clusters


@dataclass(frozen=True)
class MeshConfig:
    """Read-only view of the per-cluster mesh custom resource."""

    cluster_id: str
    namespace: str
    global_cidr: str = ""
    service_discovery_enabled: bool = False

    @property
    def globalnet_enabled(self) -> bool:
        return bool(self.global_cidr)
