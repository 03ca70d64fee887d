"""Run deployment diagnostics across a set of cluster contexts.

For each context the mesh resource is read first.  Contexts without one are
reported with a warning and contribute nothing.  Otherwise the component
health check and the endpoint overlap check both run; neither short-circuits
the other, and a failing context never stops the remaining ones from being
checked.  The overall result is the logical AND of every per-context result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from meshnet.backends.base import EndpointLister, MeshReader
from meshnet.models import IssueKind, MeshConfig, NetworkRegistry
from meshnet.overlap import detect_overlaps, success_message
from meshnet.report import Report
from meshnet.store import RegistryStore

from .config import DEFAULT_OPERATOR_NAMESPACE, DEFAULT_RESTART_WARNING_THRESHOLD
from .health import WorkloadReader, check_pods

LOG = logging.getLogger(__name__)

MESH_MISSING_MESSAGE = "Submariner is not installed"


@dataclass
class ClusterContext:
    """Capabilities bound to one cluster context."""

    name: str
    mesh: MeshReader
    endpoints: EndpointLister
    workloads: WorkloadReader


def check_overlapping_cidrs(
    context: ClusterContext, mesh: MeshConfig, report: Report
) -> bool:
    if mesh.globalnet_enabled:
        LOG.info("Globalnet deployment detected, checking if globalnet CIDRs overlap")
    else:
        LOG.info("Non-Globalnet deployment detected, checking if cluster CIDRs overlap")

    try:
        endpoints = context.endpoints.list_endpoints(mesh.namespace)
    except Exception as exc:
        report.failure(
            f"Error listing the Submariner endpoints in cluster {mesh.cluster_id!r}: {exc}",
            IssueKind.CLUSTER_ERROR,
            clusters=(mesh.cluster_id,),
        )
        return False

    result = detect_overlaps(endpoints)
    report.extend(result.issues)
    if not result.ok:
        return False

    report.success(success_message(mesh.globalnet_enabled))
    return True


def validate_cluster(
    context: ClusterContext,
    report: Report,
    operator_namespace: str = DEFAULT_OPERATOR_NAMESPACE,
    restart_warning_threshold: int = DEFAULT_RESTART_WARNING_THRESHOLD,
) -> bool:
    """Validate one context, recording into a report scoped to it."""

    scoped = report.scoped(context.name)
    LOG.info("Retrieving Submariner resource from %r", context.name)
    try:
        mesh = context.mesh.get_mesh_config()
    except Exception as exc:
        scoped.failure(
            f"Error retrieving the Submariner resource from {context.name!r}: {exc}",
            IssueKind.CLUSTER_ERROR,
        )
        return False

    if mesh is None:
        scoped.warning(MESH_MISSING_MESSAGE, IssueKind.RESOURCE_MISSING)
        return True

    healthy = check_pods(
        context.workloads,
        mesh,
        operator_namespace,
        scoped,
        restart_warning_threshold=restart_warning_threshold,
    )
    non_overlapping = check_overlapping_cidrs(context, mesh, scoped)
    return healthy and non_overlapping


def validate_deployment(
    contexts: Sequence[ClusterContext],
    report: Report,
    operator_namespace: str = DEFAULT_OPERATOR_NAMESPACE,
    restart_warning_threshold: int = DEFAULT_RESTART_WARNING_THRESHOLD,
) -> bool:
    results = [
        validate_cluster(
            context,
            report,
            operator_namespace=operator_namespace,
            restart_warning_threshold=restart_warning_threshold,
        )
        for context in contexts
    ]
    return all(results)


def bootstrap_registry(
    store: RegistryStore,
    namespace: str,
    globalnet_enabled: bool,
    cidr_range: str,
    cluster_size: int,
) -> NetworkRegistry:
    """Create the registry for a new broker, leaving an existing one alone."""

    if globalnet_enabled:
        initial = NetworkRegistry(
            enabled=True,
            default_cidr_range=cidr_range,
            default_cluster_size=cluster_size,
        )
    else:
        initial = NetworkRegistry(enabled=False)
    return store.create_if_absent(namespace, initial)


def join_cluster(
    store: RegistryStore, namespace: str, cluster_id: str, cidrs: Iterable[str]
) -> NetworkRegistry:
    """Record a joining cluster's global CIDRs in the shared registry."""

    LOG.info("Joining cluster %s to registry in namespace %s", cluster_id, namespace)
    return store.update_cluster(namespace, cluster_id, cidrs)
