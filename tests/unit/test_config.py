from pathlib import Path

import pytest

from meshctl.config import (
    DEFAULT_BROKER_NAMESPACE,
    DEFAULT_GLOBALNET_CIDR_RANGE,
    DEFAULT_OPERATOR_NAMESPACE,
    load_config,
    merge_contexts,
)
from meshnet.exceptions import InvalidCIDRError


def test_load_config(tmp_path: Path):
    config_path = tmp_path / "meshctl.yaml"
    config_path.write_text(
        """
kube:
  kubeconfig: /etc/meshctl/kubeconfig
  contexts:
    - east
    - west
broker:
  namespace: mesh-broker
  globalnet: true
  globalnet_cidr_range: 169.254.0.0/16
  globalnet_cluster_size: 8192
  psk_length: 64
diagnose:
  operator_namespace: mesh-operator
  restart_warning_threshold: 10
"""
    )

    cfg = load_config(config_path)

    assert cfg.kube.kubeconfig == Path("/etc/meshctl/kubeconfig")
    assert cfg.kube.contexts == ["east", "west"]
    assert cfg.broker.namespace == "mesh-broker"
    assert cfg.broker.globalnet is True
    assert cfg.broker.globalnet_cidr_range == "169.254.0.0/16"
    assert cfg.broker.globalnet_cluster_size == 8192
    assert cfg.broker.psk_length == 64
    assert cfg.diagnose.operator_namespace == "mesh-operator"
    assert cfg.diagnose.restart_warning_threshold == 10


def test_defaults_when_sections_missing(tmp_path: Path):
    config_path = tmp_path / "meshctl.yaml"
    config_path.write_text("kube:\n  contexts: east\n")

    cfg = load_config(config_path)

    assert cfg.kube.contexts == ["east"]
    assert cfg.broker.namespace == DEFAULT_BROKER_NAMESPACE
    assert cfg.broker.globalnet_cidr_range == DEFAULT_GLOBALNET_CIDR_RANGE
    assert cfg.diagnose.operator_namespace == DEFAULT_OPERATOR_NAMESPACE


def test_no_path_uses_defaults():
    cfg = load_config(None)

    assert cfg.kube.contexts == []
    assert cfg.broker.psk_length == 48


def test_rejects_non_mapping(tmp_path: Path):
    config_path = tmp_path / "meshctl.yaml"
    config_path.write_text("- just\n- a list\n")

    with pytest.raises(ValueError):
        load_config(config_path)


def test_rejects_invalid_cidr_range(tmp_path: Path):
    config_path = tmp_path / "meshctl.yaml"
    config_path.write_text("broker:\n  globalnet_cidr_range: 300.0.0.0/8\n")

    with pytest.raises(InvalidCIDRError):
        load_config(config_path)


def test_merge_contexts_prefers_command_line():
    assert merge_contexts(["a", "b"], ["c", "c"]) == ["c"]
    assert merge_contexts(["a", "b", "a"], None) == ["a", "b"]
    assert merge_contexts([], []) == []


def test_rejects_non_boolean_globalnet(tmp_path: Path):
    config_path = tmp_path / "meshctl.yaml"
    config_path.write_text('broker:\n  globalnet: "false"\n')

    with pytest.raises(ValueError, match="globalnet"):
        load_config(config_path)


def test_globalnet_false_is_kept(tmp_path: Path):
    config_path = tmp_path / "meshctl.yaml"
    config_path.write_text("broker:\n  globalnet: false\n")

    assert load_config(config_path).broker.globalnet is False
