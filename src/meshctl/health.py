"""Deployment health checks for the mesh components of one cluster."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from meshnet.models import IssueKind, MeshConfig
from meshnet.report import Report

from .config import DEFAULT_RESTART_WARNING_THRESHOLD

LOG = logging.getLogger(__name__)

GATEWAY_DAEMONSET = "submariner-gateway"
ROUTE_AGENT_DAEMONSET = "submariner-routeagent"
GLOBALNET_DAEMONSET = "submariner-globalnet"
LIGHTHOUSE_AGENT_DEPLOYMENT = "submariner-lighthouse-agent"
LIGHTHOUSE_COREDNS_DEPLOYMENT = "submariner-lighthouse-coredns"

POD_RUNNING = "Running"
HEALTHY_MESSAGE = "All Submariner pods are up and running"


@dataclass(frozen=True)
class DeploymentStatus:
    name: str
    replicas: Optional[int]
    available_replicas: int

    @property
    def desired(self) -> int:
        # Kubernetes defaults an unset replica count to one.
        return 1 if self.replicas is None else self.replicas


@dataclass(frozen=True)
class DaemonSetStatus:
    name: str
    desired_scheduled: int
    current_scheduled: int


@dataclass(frozen=True)
class PodStatus:
    name: str
    phase: str
    restart_counts: Sequence[int] = field(default_factory=tuple)


class WorkloadReader(ABC):
    """Read the status of workloads in a namespace."""

    @abstractmethod
    def get_deployment(self, namespace: str, name: str) -> DeploymentStatus:
        """Raise on lookup failure (missing object or API error)."""

    @abstractmethod
    def get_daemonset(self, namespace: str, name: str) -> DaemonSetStatus:
        """Raise on lookup failure (missing object or API error)."""

    @abstractmethod
    def list_pods(self, namespace: str) -> List[PodStatus]:
        ...


def check_deployment(
    reader: WorkloadReader, namespace: str, name: str, report: Report
) -> bool:
    try:
        status = reader.get_deployment(namespace, name)
    except Exception as exc:
        report.failure(f"Error obtaining Deployment {name!r}: {exc}", IssueKind.DEPLOYMENT)
        return False

    if status.available_replicas != status.desired:
        report.failure(
            f"The desired number of replicas for Deployment {name!r} "
            f"({status.desired}) does not match the actual number running "
            f"({status.available_replicas})",
            IssueKind.DEPLOYMENT,
        )
        return False
    return True


def check_daemonset(
    reader: WorkloadReader, namespace: str, name: str, report: Report
) -> bool:
    try:
        status = reader.get_daemonset(namespace, name)
    except Exception as exc:
        report.failure(f"Error obtaining DaemonSet {name!r}: {exc}", IssueKind.DAEMONSET)
        return False

    if status.current_scheduled != status.desired_scheduled:
        report.failure(
            f"The desired number of running pods for DaemonSet {name!r} "
            f"({status.desired_scheduled}) does not match the actual number "
            f"({status.current_scheduled})",
            IssueKind.DAEMONSET,
        )
        return False
    return True


def check_pods_status(
    reader: WorkloadReader,
    namespace: str,
    report: Report,
    restart_warning_threshold: int,
) -> bool:
    try:
        pods = reader.list_pods(namespace)
    except Exception as exc:
        report.failure(f"Error obtaining Pods list: {exc}", IssueKind.POD)
        return False

    healthy = True
    for pod in pods:
        if pod.phase != POD_RUNNING:
            report.failure(
                f"Pod {pod.name!r} is not running. (current state is {pod.phase})",
                IssueKind.POD,
            )
            healthy = False
            continue
        for restarts in pod.restart_counts:
            if restarts >= restart_warning_threshold:
                report.warning(
                    f"Pod {pod.name!r} has restarted {restarts} times",
                    IssueKind.RESTARTS,
                )
    return healthy


def check_pods(
    reader: WorkloadReader,
    mesh: MeshConfig,
    operator_namespace: str,
    report: Report,
    restart_warning_threshold: int = DEFAULT_RESTART_WARNING_THRESHOLD,
) -> bool:
    """Check every mesh component in ``operator_namespace``.

    All components are inspected even after one fails so the report lists
    every problem in one pass.
    """

    LOG.debug("checking mesh pods in namespace %s", operator_namespace)
    results = [
        check_daemonset(reader, operator_namespace, GATEWAY_DAEMONSET, report),
        check_daemonset(reader, operator_namespace, ROUTE_AGENT_DAEMONSET, report),
    ]
    if mesh.service_discovery_enabled:
        results.append(
            check_deployment(reader, operator_namespace, LIGHTHOUSE_AGENT_DEPLOYMENT, report)
        )
        results.append(
            check_deployment(reader, operator_namespace, LIGHTHOUSE_COREDNS_DEPLOYMENT, report)
        )
    if mesh.globalnet_enabled:
        results.append(
            check_daemonset(reader, operator_namespace, GLOBALNET_DAEMONSET, report)
        )
    results.append(
        check_pods_status(reader, operator_namespace, report, restart_warning_threshold)
    )

    if not all(results):
        return False
    report.success(HEALTHY_MESSAGE)
    return True
