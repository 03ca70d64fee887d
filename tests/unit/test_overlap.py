import pytest

from meshnet.models import EndpointRecord, IssueKind, Severity, endpoint_from_resource
from meshnet.overlap import (
    CLUSTER_SUCCESS_MESSAGE,
    GLOBALNET_SUCCESS_MESSAGE,
    cidrs_overlap,
    detect_overlaps,
    success_message,
)


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("10.0.0.0/24", "10.1.0.0/24", False),
        ("10.0.0.0/16", "10.0.1.0/24", True),
        ("10.0.1.0/24", "10.0.0.0/16", True),
        ("10.0.0.0/24", "10.0.0.0/25", True),
        ("10.0.0.0/25", "10.0.0.128/25", False),
        ("fd00::/48", "fd00:0:0:1::/64", True),
        ("fd00::/64", "fd00:0:0:1::/64", False),
        ("10.0.0.0/8", "::/0", False),
        ("0.0.0.0/0", "192.168.1.0/24", True),
    ],
)
def test_cidrs_overlap(a, b, expected):
    assert cidrs_overlap(a, b) is expected
    assert cidrs_overlap(b, a) is expected


def test_empty_input_is_ok():
    result = detect_overlaps([])

    assert result.ok is True
    assert result.issues == ()
    assert result.pairs_checked == 0


def test_single_endpoint_has_no_pairs():
    result = detect_overlaps([EndpointRecord("a", "ep-a", ["10.0.0.0/24"])])

    assert result.ok is True
    assert result.pairs_checked == 0


def test_reports_single_overlap_between_two_of_three_clusters():
    endpoints = [
        EndpointRecord("clusterA", "ep-a", ["10.0.0.0/24"]),
        EndpointRecord("clusterB", "ep-b", ["10.0.0.0/25"]),
        EndpointRecord("clusterC", "ep-c", ["10.1.0.0/24"]),
    ]

    result = detect_overlaps(endpoints)

    assert result.ok is False
    assert result.pairs_checked == 3
    assert len(result.issues) == 1
    issue = result.issues[0]
    assert issue.kind is IssueKind.OVERLAP
    assert issue.severity is Severity.FAILURE
    assert set(issue.clusters) == {"clusterA", "clusterB"}
    assert not any(i.involves("clusterC") for i in result.issues)


def test_duplicate_cluster_ignores_subnets():
    endpoints = [
        EndpointRecord("same", "ep-1", ["10.0.0.0/24"]),
        EndpointRecord("same", "ep-2", ["10.0.0.0/24"]),
    ]

    result = detect_overlaps(endpoints)

    assert [i.kind for i in result.issues] == [IssueKind.DUPLICATE_CLUSTER]
    assert "ep-1" in result.issues[0].message
    assert "ep-2" in result.issues[0].message
    assert "same" in result.issues[0].message


def test_duplicate_cluster_reported_even_with_disjoint_subnets():
    endpoints = [
        EndpointRecord("same", "ep-1", ["10.0.0.0/24"]),
        EndpointRecord("same", "ep-2", ["192.168.0.0/24"]),
    ]

    result = detect_overlaps(endpoints)

    assert [i.kind for i in result.issues] == [IssueKind.DUPLICATE_CLUSTER]


def test_each_pair_evaluated_once_for_triplicated_cluster():
    endpoints = [
        EndpointRecord("same", "ep-1", []),
        EndpointRecord("same", "ep-2", []),
        EndpointRecord("same", "ep-3", []),
    ]

    result = detect_overlaps(endpoints)

    assert result.pairs_checked == 3
    assert len(result.issues) == 3
    assert all(i.kind is IssueKind.DUPLICATE_CLUSTER for i in result.issues)


def test_issues_do_not_depend_on_input_order():
    a = EndpointRecord("a", "ep-a", ["10.0.0.0/16", "192.168.0.0/24"])
    b = EndpointRecord("b", "ep-b", ["10.0.1.0/24", "192.168.0.0/16"])

    forward = detect_overlaps([a, b])
    backward = detect_overlaps([b, a])

    assert set(forward.issues) == set(backward.issues)
    assert len(forward.issues) == 2


def test_every_overlapping_subnet_is_reported():
    endpoints = [
        EndpointRecord("a", "ep-a", ["10.0.0.0/8"]),
        EndpointRecord("b", "ep-b", ["10.1.0.0/16", "10.2.0.0/16", "172.16.0.0/12"]),
        EndpointRecord("c", "ep-c", ["10.3.0.0/16"]),
    ]

    result = detect_overlaps(endpoints)

    overlaps = [i for i in result.issues if i.kind is IssueKind.OVERLAP]
    assert sorted(i.subnet for i in overlaps) == ["10.1.0.0/16", "10.2.0.0/16", "10.3.0.0/16"]


def test_invalid_subnet_is_reported_and_detection_continues():
    endpoints = [
        EndpointRecord("a", "ep-a", ["10.0.0.0/24"]),
        EndpointRecord("b", "ep-b", ["bogus", "10.0.0.0/25"]),
    ]

    result = detect_overlaps(endpoints)

    kinds = [i.kind for i in result.issues]
    assert IssueKind.INVALID_CIDR in kinds
    assert IssueKind.OVERLAP in kinds


def test_success_message_variants():
    assert success_message(True) == GLOBALNET_SUCCESS_MESSAGE
    assert success_message(False) == CLUSTER_SUCCESS_MESSAGE
    assert "globalnet" in success_message(True)


def test_invalid_subnet_reported_once_across_all_pairs():
    endpoints = [EndpointRecord(f"c{n}", f"ep-{n}", [f"10.{n}.0.0/16"]) for n in range(4)]
    endpoints.append(EndpointRecord("bad", "ep-bad", ["bogus", "192.168.0.0/24"]))

    result = detect_overlaps(endpoints)

    invalid = [i for i in result.issues if i.kind is IssueKind.INVALID_CIDR]
    assert result.pairs_checked == 10
    assert len(invalid) == 1
    assert invalid[0].subnet == "bogus"
    assert invalid[0].clusters == ("bad",)
    assert len(result.issues) == 1


def test_invalid_subnet_on_lone_endpoint_is_reported():
    result = detect_overlaps([EndpointRecord("a", "ep-a", ["bogus"])])

    assert result.ok is False
    assert [i.kind for i in result.issues] == [IssueKind.INVALID_CIDR]


def test_endpoint_from_resource():
    endpoint = endpoint_from_resource(
        {
            "metadata": {"name": "east-submariner-cable"},
            "spec": {"cluster_id": "east", "subnets": ["10.0.0.0/16", "10.96.0.0/12"]},
        }
    )

    assert endpoint.cluster_id == "east"
    assert endpoint.name == "east-submariner-cable"
    assert endpoint.subnets == ("10.0.0.0/16", "10.96.0.0/12")
