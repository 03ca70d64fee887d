"""Entry point for the meshctl command line."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from meshnet.exceptions import MeshnetError
from meshnet.psk import ensure_psk_secret
from meshnet.report import Report
from meshnet.store import RegistryStore

from . import kube
from .config import MeshctlConfig, load_config, merge_contexts
from .validate import bootstrap_registry, join_cluster, validate_deployment

LOG = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meshctl", description="Manage and diagnose the cluster network mesh"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML configuration file",
    )
    parser.add_argument(
        "--kubeconfig",
        type=Path,
        default=None,
        help="Path to the kubeconfig file (defaults to the client default)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    diagnose = commands.add_parser(
        "diagnose",
        help="Run diagnostic checks on the deployment and report any issues",
    )
    diagnose_commands = diagnose.add_subparsers(dest="diagnose_command", required=True)
    deployment = diagnose_commands.add_parser(
        "deployment",
        help="Check that the components are running with no overlapping CIDRs",
    )
    deployment.add_argument(
        "--kubecontext",
        dest="contexts",
        action="append",
        default=None,
        help="Cluster context to check; may be repeated",
    )
    deployment.set_defaults(handler=_cmd_diagnose_deployment)

    broker = commands.add_parser("broker", help="Manage the shared network registry")
    broker_commands = broker.add_subparsers(dest="broker_command", required=True)
    for name, handler, help_text in (
        ("init", _cmd_broker_init, "Create the registry and PSK secret if absent"),
        ("join", _cmd_broker_join, "Record a cluster's global CIDRs"),
        ("show", _cmd_broker_show, "Print the current registry"),
    ):
        sub = broker_commands.add_parser(name, help=help_text)
        sub.add_argument("--namespace", default=None, help="Broker namespace")
        sub.add_argument(
            "--kubecontext", dest="context", default=None, help="Broker cluster context"
        )
        sub.set_defaults(handler=handler)
        if name == "init":
            sub.add_argument(
                "--globalnet",
                action="store_true",
                default=None,
                help="Enable globalnet range tracking",
            )
            sub.add_argument("--globalnet-cidr-range", default=None)
            sub.add_argument("--globalnet-cluster-size", type=int, default=None)
        elif name == "join":
            sub.add_argument("--cluster-id", required=True)
            sub.add_argument(
                "--global-cidr",
                dest="cidrs",
                action="append",
                default=[],
                help="Global CIDR claimed by the cluster; may be repeated",
            )
    return parser


def _cmd_diagnose_deployment(args: argparse.Namespace, config: MeshctlConfig) -> int:
    contexts = merge_contexts(config.kube.contexts, args.contexts)
    cluster_contexts = kube.build_cluster_contexts(
        contexts,
        config.diagnose.operator_namespace,
        kubeconfig=args.kubeconfig or config.kube.kubeconfig,
    )

    report = Report()
    passed = validate_deployment(
        cluster_contexts,
        report,
        operator_namespace=config.diagnose.operator_namespace,
        restart_warning_threshold=config.diagnose.restart_warning_threshold,
    )
    LOG.info(
        "diagnosis finished: %d failures, %d warnings",
        len(report.failures),
        len(report.warnings),
    )
    return 0 if passed else 1


def _broker_backends(args: argparse.Namespace, config: MeshctlConfig) -> kube.BrokerBackends:
    return kube.broker_backends(args.kubeconfig or config.kube.kubeconfig, args.context)


def _cmd_broker_init(args: argparse.Namespace, config: MeshctlConfig) -> int:
    namespace = args.namespace or config.broker.namespace
    globalnet = config.broker.globalnet if args.globalnet is None else args.globalnet
    backends = _broker_backends(args, config)

    cluster_size = args.globalnet_cluster_size
    if cluster_size is None:
        cluster_size = config.broker.globalnet_cluster_size
    registry = bootstrap_registry(
        RegistryStore(backends.records),
        namespace,
        globalnet_enabled=globalnet,
        cidr_range=args.globalnet_cidr_range or config.broker.globalnet_cidr_range,
        cluster_size=cluster_size,
    )
    ensure_psk_secret(backends.secrets, namespace, config.broker.psk_length)
    LOG.info(
        "broker registry ready in %s (globalnet=%s, %d clusters)",
        namespace,
        registry.enabled,
        len(registry.allocations),
    )
    return 0


def _cmd_broker_join(args: argparse.Namespace, config: MeshctlConfig) -> int:
    if not args.cidrs:
        LOG.error("at least one --global-cidr is required")
        return 1
    namespace = args.namespace or config.broker.namespace
    backends = _broker_backends(args, config)
    join_cluster(RegistryStore(backends.records), namespace, args.cluster_id, args.cidrs)
    return 0


def _cmd_broker_show(args: argparse.Namespace, config: MeshctlConfig) -> int:
    namespace = args.namespace or config.broker.namespace
    backends = _broker_backends(args, config)
    registry = RegistryStore(backends.records).fetch(namespace)
    summary = {
        "enabled": registry.enabled,
        "defaultCidrRange": registry.default_cidr_range,
        "defaultClusterSize": registry.default_cluster_size,
        "allocations": [
            {"cluster_id": a.cluster_id, "global_cidr": list(a.global_cidrs)}
            for a in registry.allocations
        ],
    }
    print(json.dumps(summary, indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    try:
        config = load_config(args.config)
        return args.handler(args, config)
    except (MeshnetError, ValueError, OSError) as exc:
        LOG.debug("command failed", exc_info=True)
        print(f"[meshctl] ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
