import json

import pytest
from urllib3.exceptions import MaxRetryError

from meshctl import kube, main
from meshnet.backends.memory import InMemoryBackend
from meshnet.exceptions import ClusterConnectionError
from meshnet.psk import PSK_SECRET_NAME
from meshnet.store import RegistryStore


@pytest.fixture
def backend(monkeypatch):
    memory = InMemoryBackend()
    monkeypatch.setattr(
        kube,
        "broker_backends",
        lambda kubeconfig=None, context=None: kube.BrokerBackends(records=memory, secrets=memory),
    )
    return memory


def test_broker_init_join_show(backend, capsys):
    assert main.main(["broker", "init", "--namespace", "broker", "--globalnet"]) == 0
    assert backend.get_secret("broker", PSK_SECRET_NAME)

    assert main.main(
        [
            "broker",
            "join",
            "--namespace",
            "broker",
            "--cluster-id",
            "east",
            "--global-cidr",
            "242.0.0.0/16",
        ]
    ) == 0

    capsys.readouterr()
    assert main.main(["broker", "show", "--namespace", "broker"]) == 0
    shown = json.loads(capsys.readouterr().out)
    assert shown["enabled"] is True
    assert shown["defaultCidrRange"] == "242.0.0.0/8"
    assert shown["allocations"] == [{"cluster_id": "east", "global_cidr": ["242.0.0.0/16"]}]


def test_broker_join_rejects_invalid_cidr(backend, capsys):
    main.main(["broker", "init", "--namespace", "broker"])

    code = main.main(
        ["broker", "join", "--namespace", "broker", "--cluster-id", "east", "--global-cidr", "nope"]
    )

    assert code == 1
    assert "invalid CIDR" in capsys.readouterr().err


def test_broker_show_missing_registry(backend):
    assert main.main(["broker", "show", "--namespace", "nowhere"]) == 1


def test_diagnose_connection_failure_exits_one(monkeypatch, capsys):
    def fail(contexts, operator_namespace, kubeconfig=None):
        raise ClusterConnectionError("Error getting REST config for cluster 'east'")

    monkeypatch.setattr(kube, "build_cluster_contexts", fail)

    assert main.main(["diagnose", "deployment", "--kubecontext", "east"]) == 1
    assert "REST config" in capsys.readouterr().err


def test_diagnose_exit_code_follows_validation(monkeypatch):
    seen = {}

    def contexts(names, operator_namespace, kubeconfig=None):
        seen["names"] = names
        seen["namespace"] = operator_namespace
        return []

    monkeypatch.setattr(kube, "build_cluster_contexts", contexts)

    assert main.main(["diagnose", "deployment", "--kubecontext", "a", "--kubecontext", "b"]) == 0
    assert seen == {"names": ["a", "b"], "namespace": "submariner-operator"}


def test_broker_init_keeps_explicit_zero_cluster_size(backend):
    code = main.main(
        [
            "broker",
            "init",
            "--namespace",
            "broker",
            "--globalnet",
            "--globalnet-cluster-size",
            "0",
        ]
    )

    assert code == 0
    assert RegistryStore(backend).fetch("broker").default_cluster_size == 0


class RefusingCoreApi:
    def __getattr__(self, name):
        def call(*args, **kwargs):
            raise MaxRetryError(None, "/api/v1", reason="Connection refused")

        return call


@pytest.mark.parametrize(
    "argv",
    [
        ["broker", "init"],
        ["broker", "show"],
        ["broker", "join", "--cluster-id", "east", "--global-cidr", "242.0.0.0/16"],
    ],
)
def test_broker_unreachable_api_exits_one(monkeypatch, capsys, argv):
    api = RefusingCoreApi()
    monkeypatch.setattr(
        kube,
        "broker_backends",
        lambda kubeconfig=None, context=None: kube.BrokerBackends(
            records=kube.ConfigMapBackend(api), secrets=kube.SecretBackend(api)
        ),
    )

    assert main.main(argv) == 1
    assert "error reaching the API server" in capsys.readouterr().err
