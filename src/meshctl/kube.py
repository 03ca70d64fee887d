"""Kubernetes-backed implementations of the meshnet capability interfaces."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

from kubernetes import client
from kubernetes import config as kube_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from meshnet.backends.base import (
    EndpointLister,
    MeshReader,
    RecordBackend,
    SecretWriter,
    StoredRecord,
)
from meshnet.exceptions import (
    AlreadyExistsError,
    ClusterConnectionError,
    ConflictError,
    NotFoundError,
    StorageError,
)
from meshnet.models import EndpointRecord, MeshConfig, endpoint_from_resource

from .health import DaemonSetStatus, DeploymentStatus, PodStatus, WorkloadReader
from .validate import ClusterContext

LOG = logging.getLogger(__name__)

MESH_GROUP = "submariner.io"
MESH_VERSION = "v1alpha1"
MESH_PLURAL = "submariners"
MESH_RESOURCE_NAME = "submariner"
ENDPOINT_VERSION = "v1"
ENDPOINT_PLURAL = "endpoints"


# Transport failures surface as urllib3 errors rather than ApiException.
API_ERRORS = (ApiException, HTTPError)


def _status(exc: Exception) -> Optional[int]:
    return exc.status if isinstance(exc, ApiException) else None


def _api_error(exc: Exception, what: str) -> Exception:
    if isinstance(exc, HTTPError):
        return StorageError(f"error reaching the API server for {what}: {exc}")
    if _status(exc) == 404:
        return NotFoundError(f"{what} not found")
    return StorageError(f"error accessing {what}: {exc.status} {exc.reason}")


class ConfigMapBackend(RecordBackend):
    """Store registry records as ConfigMaps.

    The ConfigMap ``resourceVersion`` is the version token, so passing it to
    :meth:`replace` turns the update into a compare-and-swap enforced by the
    API server.
    """

    def __init__(self, core_api: client.CoreV1Api) -> None:
        self._api = core_api

    def get(self, namespace: str, name: str) -> StoredRecord:
        try:
            cm = self._api.read_namespaced_config_map(name, namespace)
        except API_ERRORS as exc:
            raise _api_error(exc, f"ConfigMap {namespace}/{name}") from exc
        return StoredRecord(
            data=dict(cm.data or {}),
            version=cm.metadata.resource_version,
            labels=dict(cm.metadata.labels or {}),
        )

    def create(
        self,
        namespace: str,
        name: str,
        data: Mapping[str, str],
        labels: Optional[Mapping[str, str]] = None,
    ) -> StoredRecord:
        body = client.V1ConfigMap(
            metadata=client.V1ObjectMeta(
                name=name, namespace=namespace, labels=dict(labels or {})
            ),
            data=dict(data),
        )
        try:
            cm = self._api.create_namespaced_config_map(namespace, body)
        except API_ERRORS as exc:
            if _status(exc) == 409:
                raise AlreadyExistsError(
                    f"ConfigMap {namespace}/{name} already exists"
                ) from exc
            raise _api_error(exc, f"ConfigMap {namespace}/{name}") from exc
        return StoredRecord(
            data=dict(cm.data or {}),
            version=cm.metadata.resource_version,
            labels=dict(cm.metadata.labels or {}),
        )

    def replace(
        self,
        namespace: str,
        name: str,
        data: Mapping[str, str],
        version: Optional[str] = None,
    ) -> StoredRecord:
        try:
            current = self._api.read_namespaced_config_map(name, namespace)
        except API_ERRORS as exc:
            raise _api_error(exc, f"ConfigMap {namespace}/{name}") from exc

        current.data = dict(data)
        # Without a resourceVersion the API server accepts the write blindly.
        current.metadata.resource_version = version
        try:
            cm = self._api.replace_namespaced_config_map(name, namespace, current)
        except API_ERRORS as exc:
            if _status(exc) == 409:
                raise ConflictError(
                    f"ConfigMap {namespace}/{name} was modified concurrently"
                ) from exc
            raise _api_error(exc, f"ConfigMap {namespace}/{name}") from exc
        return StoredRecord(
            data=dict(cm.data or {}),
            version=cm.metadata.resource_version,
            labels=dict(cm.metadata.labels or {}),
        )


class SecretBackend(SecretWriter):
    def __init__(self, core_api: client.CoreV1Api) -> None:
        self._api = core_api

    def create_secret(
        self, namespace: str, name: str, data: Mapping[str, bytes]
    ) -> None:
        body = client.V1Secret(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace),
            data={k: base64.b64encode(v).decode("ascii") for k, v in data.items()},
        )
        try:
            self._api.create_namespaced_secret(namespace, body)
        except API_ERRORS as exc:
            if _status(exc) == 409:
                raise AlreadyExistsError(
                    f"Secret {namespace}/{name} already exists"
                ) from exc
            raise _api_error(exc, f"Secret {namespace}/{name}") from exc


def mesh_config_from_resource(resource: Mapping[str, Any]) -> MeshConfig:
    metadata = resource.get("metadata") or {}
    spec = resource.get("spec") or {}
    status = resource.get("status") or {}
    return MeshConfig(
        cluster_id=str(status.get("clusterID") or spec.get("clusterID") or ""),
        namespace=str(metadata.get("namespace") or spec.get("namespace") or ""),
        global_cidr=str(spec.get("globalCIDR") or ""),
        service_discovery_enabled=bool(spec.get("serviceDiscoveryEnabled", False)),
    )


class MeshResourceClient(MeshReader, EndpointLister):
    """Read the mesh custom resources through ``CustomObjectsApi``."""

    def __init__(
        self, custom_api: client.CustomObjectsApi, operator_namespace: str
    ) -> None:
        self._api = custom_api
        self._operator_namespace = operator_namespace

    def get_mesh_config(self) -> Optional[MeshConfig]:
        try:
            resource = self._api.get_namespaced_custom_object(
                MESH_GROUP,
                MESH_VERSION,
                self._operator_namespace,
                MESH_PLURAL,
                MESH_RESOURCE_NAME,
            )
        except API_ERRORS as exc:
            if _status(exc) == 404:
                return None
            raise _api_error(exc, "Submariner resource") from exc
        return mesh_config_from_resource(resource)

    def list_endpoints(self, namespace: str) -> List[EndpointRecord]:
        try:
            result = self._api.list_namespaced_custom_object(
                MESH_GROUP, ENDPOINT_VERSION, namespace, ENDPOINT_PLURAL
            )
        except API_ERRORS as exc:
            raise _api_error(exc, f"endpoints in {namespace}") from exc
        return [endpoint_from_resource(item) for item in result.get("items", [])]


class KubeWorkloadReader(WorkloadReader):
    def __init__(self, apps_api: client.AppsV1Api, core_api: client.CoreV1Api) -> None:
        self._apps = apps_api
        self._core = core_api

    def get_deployment(self, namespace: str, name: str) -> DeploymentStatus:
        try:
            deployment = self._apps.read_namespaced_deployment(name, namespace)
        except API_ERRORS as exc:
            raise _api_error(exc, f"Deployment {namespace}/{name}") from exc
        return DeploymentStatus(
            name=name,
            replicas=deployment.spec.replicas,
            available_replicas=deployment.status.available_replicas or 0,
        )

    def get_daemonset(self, namespace: str, name: str) -> DaemonSetStatus:
        try:
            daemonset = self._apps.read_namespaced_daemon_set(name, namespace)
        except API_ERRORS as exc:
            raise _api_error(exc, f"DaemonSet {namespace}/{name}") from exc
        return DaemonSetStatus(
            name=name,
            desired_scheduled=daemonset.status.desired_number_scheduled or 0,
            current_scheduled=daemonset.status.current_number_scheduled or 0,
        )

    def list_pods(self, namespace: str) -> List[PodStatus]:
        try:
            pods = self._core.list_namespaced_pod(namespace)
        except API_ERRORS as exc:
            raise _api_error(exc, f"pods in {namespace}") from exc
        return [
            PodStatus(
                name=pod.metadata.name,
                phase=pod.status.phase,
                restart_counts=tuple(
                    c.restart_count for c in (pod.status.container_statuses or [])
                ),
            )
            for pod in pods.items
        ]


def new_api_client(
    kubeconfig: Optional[Path] = None, context: Optional[str] = None
) -> client.ApiClient:
    """Build an API client for ``context``; failures are fatal for the run."""

    try:
        return kube_config.new_client_from_config(
            config_file=str(kubeconfig) if kubeconfig else None,
            context=context,
        )
    except (ConfigException, OSError) as exc:
        label = context or "current context"
        raise ClusterConnectionError(
            f"Error getting REST config for cluster {label!r}: {exc}"
        ) from exc


def build_cluster_contexts(
    contexts: Sequence[str],
    operator_namespace: str,
    kubeconfig: Optional[Path] = None,
) -> List[ClusterContext]:
    """Connect to every context up front so a bad one aborts before any check."""

    names: Sequence[Optional[str]] = list(contexts) or [None]
    result: List[ClusterContext] = []
    for name in names:
        api_client = new_api_client(kubeconfig, name)
        core = client.CoreV1Api(api_client)
        mesh = MeshResourceClient(client.CustomObjectsApi(api_client), operator_namespace)
        result.append(
            ClusterContext(
                name=name or "current",
                mesh=mesh,
                endpoints=mesh,
                workloads=KubeWorkloadReader(client.AppsV1Api(api_client), core),
            )
        )
        LOG.debug("connected to cluster context %s", name or "current")
    return result


@dataclass
class BrokerBackends:
    records: RecordBackend
    secrets: SecretWriter


def broker_backends(
    kubeconfig: Optional[Path] = None, context: Optional[str] = None
) -> BrokerBackends:
    """Return the record and secret backends for the broker cluster."""

    core = client.CoreV1Api(new_api_client(kubeconfig, context))
    return BrokerBackends(records=ConfigMapBackend(core), secrets=SecretBackend(core))
