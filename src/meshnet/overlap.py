"""Pairwise CIDR conflict detection between cluster endpoints."""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

from .models import EndpointRecord, Issue, IssueKind, Severity

LOG = logging.getLogger(__name__)

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

GLOBALNET_SUCCESS_MESSAGE = "Clusters do not have overlapping globalnet CIDRs"
CLUSTER_SUCCESS_MESSAGE = "Clusters do not have overlapping CIDRs"


@dataclass(frozen=True)
class OverlapResult:
    """Outcome of :func:`detect_overlaps`."""

    ok: bool
    issues: Tuple[Issue, ...]
    pairs_checked: int


def parse_network(cidr: str) -> Network:
    # Host bits are tolerated; endpoints sometimes advertise "10.0.0.1/24".
    return ipaddress.ip_network(cidr, strict=False)


def networks_overlap(a: Network, b: Network) -> bool:
    """Return True when the two networks share at least one address."""

    if a.version != b.version:
        return False
    return a.network_address in b or b.network_address in a


def cidrs_overlap(a: str, b: str) -> bool:
    """String form of :func:`networks_overlap`; raises ``ValueError``."""

    return networks_overlap(parse_network(a), parse_network(b))


def _canonical_order(
    records: Sequence[EndpointRecord], i: int, j: int
) -> Tuple[int, int]:
    first, second = records[i], records[j]
    if (second.cluster_id, second.name) < (first.cluster_id, first.name):
        return j, i
    return i, j


def _parse_subnets(
    endpoint: EndpointRecord, issues: List[Issue]
) -> List[Tuple[str, Network]]:
    parsed: List[Tuple[str, Network]] = []
    for subnet in endpoint.subnets:
        try:
            parsed.append((subnet, parse_network(subnet)))
        except ValueError as exc:
            issues.append(_invalid_cidr(endpoint.cluster_id, subnet, exc))
    return parsed


def _check_pair(
    source: EndpointRecord,
    dest: EndpointRecord,
    source_networks: Sequence[Tuple[str, Network]],
    dest_networks: Sequence[Tuple[str, Network]],
) -> List[Issue]:
    if source.cluster_id == dest.cluster_id:
        # Multiple endpoints per cluster are not supported.
        return [
            Issue(
                severity=Severity.FAILURE,
                kind=IssueKind.DUPLICATE_CLUSTER,
                message=(
                    f"Found multiple endpoints ({source.name!r} and {dest.name!r}) "
                    f"in cluster {source.cluster_id!r}"
                ),
                clusters=(source.cluster_id,),
            )
        ]

    issues: List[Issue] = []
    for subnet, network in dest_networks:
        if any(networks_overlap(network, other) for _, other in source_networks):
            issues.append(
                Issue(
                    severity=Severity.FAILURE,
                    kind=IssueKind.OVERLAP,
                    message=(
                        f"CIDR {subnet!r} in cluster {dest.cluster_id!r} overlaps "
                        f"with cluster {source.cluster_id!r} "
                        f"(CIDRs: {', '.join(source.subnets)})"
                    ),
                    clusters=(dest.cluster_id, source.cluster_id),
                    subnet=subnet,
                )
            )
    return issues


def _invalid_cidr(cluster_id: str, subnet: str, exc: Exception) -> Issue:
    return Issue(
        severity=Severity.FAILURE,
        kind=IssueKind.INVALID_CIDR,
        message=f"Error parsing CIDR {subnet!r} in cluster {cluster_id!r}: {exc}",
        clusters=(cluster_id,),
        subnet=subnet,
    )


def detect_overlaps(endpoints: Sequence[EndpointRecord]) -> OverlapResult:
    """Compare every unordered pair of ``endpoints`` exactly once.

    Subnets are parsed once per endpoint up front, so an unparsable subnet is
    reported a single time no matter how many pairs its endpoint is part of.
    Each pair is put into a canonical ``(cluster_id, name)`` order before it
    is compared so the issues reported for a pair never depend on where the
    two endpoints sit in the input.  Two endpoints of the same cluster yield
    a single duplicate issue and their subnets are not compared.  Otherwise
    every destination subnet intersecting any source subnet yields an
    overlap issue.  Detection never stops early: all pairs and all subnets
    are always evaluated.
    """

    records = list(endpoints)
    issues: List[Issue] = []
    networks = [_parse_subnets(record, issues) for record in records]

    pairs = 0
    for i in range(len(records)):
        for j in range(i + 1, len(records)):
            pairs += 1
            source, dest = _canonical_order(records, i, j)
            issues.extend(
                _check_pair(
                    records[source], records[dest], networks[source], networks[dest]
                )
            )

    LOG.debug(
        "checked %d endpoint pairs across %d endpoints, %d issues",
        pairs,
        len(records),
        len(issues),
    )
    return OverlapResult(ok=not issues, issues=tuple(issues), pairs_checked=pairs)


def success_message(globalnet_enabled: bool) -> str:
    """Message reported when no overlap was found."""

    if globalnet_enabled:
        return GLOBALNET_SUCCESS_MESSAGE
    return CLUSTER_SUCCESS_MESSAGE
