"""YAML configuration loader for meshctl."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

import yaml

from meshnet.models import validate_cidr
from meshnet.psk import DEFAULT_PSK_LENGTH

DEFAULT_BROKER_NAMESPACE = "submariner-k8s-broker"
DEFAULT_OPERATOR_NAMESPACE = "submariner-operator"
DEFAULT_GLOBALNET_CIDR_RANGE = "242.0.0.0/8"
DEFAULT_GLOBALNET_CLUSTER_SIZE = 65536
DEFAULT_RESTART_WARNING_THRESHOLD = 5


@dataclass
class KubeConfig:
    kubeconfig: Optional[Path] = None
    contexts: Sequence[str] = field(default_factory=list)


@dataclass
class BrokerConfig:
    namespace: str = DEFAULT_BROKER_NAMESPACE
    globalnet: bool = False
    globalnet_cidr_range: str = DEFAULT_GLOBALNET_CIDR_RANGE
    globalnet_cluster_size: int = DEFAULT_GLOBALNET_CLUSTER_SIZE
    psk_length: int = DEFAULT_PSK_LENGTH


@dataclass
class DiagnoseConfig:
    operator_namespace: str = DEFAULT_OPERATOR_NAMESPACE
    restart_warning_threshold: int = DEFAULT_RESTART_WARNING_THRESHOLD


@dataclass
class MeshctlConfig:
    kube: KubeConfig = field(default_factory=KubeConfig)
    broker: BrokerConfig = field(default_factory=BrokerConfig)
    diagnose: DiagnoseConfig = field(default_factory=DiagnoseConfig)


def _section(data: dict, name: str) -> dict:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'{name}' section must be a mapping")
    return section


def _parse_kube(section: dict) -> KubeConfig:
    contexts = section.get("contexts", [])
    if isinstance(contexts, str):
        contexts = [contexts]
    if not isinstance(contexts, list):
        raise ValueError("'kube.contexts' must be a list")
    kubeconfig = section.get("kubeconfig")
    return KubeConfig(
        kubeconfig=Path(kubeconfig).expanduser() if kubeconfig else None,
        contexts=[str(c) for c in contexts],
    )


def _parse_broker(section: dict) -> BrokerConfig:
    cidr_range = str(section.get("globalnet_cidr_range", DEFAULT_GLOBALNET_CIDR_RANGE))
    validate_cidr(cidr_range)
    cluster_size = int(section.get("globalnet_cluster_size", DEFAULT_GLOBALNET_CLUSTER_SIZE))
    if cluster_size <= 0:
        raise ValueError("'broker.globalnet_cluster_size' must be positive")
    globalnet = section.get("globalnet", False)
    if not isinstance(globalnet, bool):
        raise ValueError("'broker.globalnet' must be true or false")
    psk_length = int(section.get("psk_length", DEFAULT_PSK_LENGTH))
    if psk_length <= 0:
        raise ValueError("'broker.psk_length' must be positive")

    return BrokerConfig(
        namespace=str(section.get("namespace", DEFAULT_BROKER_NAMESPACE)),
        globalnet=globalnet,
        globalnet_cidr_range=cidr_range,
        globalnet_cluster_size=cluster_size,
        psk_length=psk_length,
    )


def _parse_diagnose(section: dict) -> DiagnoseConfig:
    return DiagnoseConfig(
        operator_namespace=str(
            section.get("operator_namespace", DEFAULT_OPERATOR_NAMESPACE)
        ),
        restart_warning_threshold=int(
            section.get("restart_warning_threshold", DEFAULT_RESTART_WARNING_THRESHOLD)
        ),
    )


def load_config(path: Optional[Path]) -> MeshctlConfig:
    """Load ``path``; a missing path yields the built-in defaults."""

    if path is None:
        return MeshctlConfig()

    data = yaml.safe_load(Path(path).read_text())
    if data is None:
        return MeshctlConfig()
    if not isinstance(data, dict):
        raise ValueError("meshctl configuration must be a mapping")

    return MeshctlConfig(
        kube=_parse_kube(_section(data, "kube")),
        broker=_parse_broker(_section(data, "broker")),
        diagnose=_parse_diagnose(_section(data, "diagnose")),
    )


def merge_contexts(configured: Sequence[str], requested: Optional[List[str]]) -> List[str]:
    """Command line contexts win over the file; an empty result means "current"."""

    if requested:
        return list(dict.fromkeys(requested))
    return list(dict.fromkeys(configured))
