"""Unit tests for diff response parsing and ordering."""

import json

import pytest

from spinmd.delivery import ManagedResourceDiff, parse_diff_response, sort_diffs
from spinmd.delivery.diff import NO_DIFF
from spinmd.errors import InvalidContentError


def _ids(diffs):
    return [d.resource_id for d in diffs]


def _sorted_ids(*resource_ids):
    return _ids(sort_diffs([ManagedResourceDiff(resource_id=r) for r in resource_ids]))


# ── Ordering ─────────────────────────────────────────────────────


def test_sort_same_type_orders_by_third_segment():
    assert _sorted_ids("cluster:prod:zzz", "cluster:test:aaa") == ["cluster:test:aaa", "cluster:prod:zzz"]


def test_sort_same_third_segment_falls_back_to_whole_id():
    assert _sorted_ids("cluster:b:myapp", "cluster:a:myapp") == ["cluster:a:myapp", "cluster:b:myapp"]


def test_sort_different_types_use_whole_id():
    assert _sorted_ids("security-group:test:aaa", "cluster:test:zzz") == [
        "cluster:test:zzz",
        "security-group:test:aaa",
    ]


def test_sort_short_ids_use_whole_id():
    assert _sorted_ids("cluster:b", "cluster:a") == ["cluster:a", "cluster:b"]


# ── Parsing ──────────────────────────────────────────────────────


def _response(*batches):
    return json.dumps([{"resourceDiffs": list(batch)} for batch in batches]).encode()


def test_parse_flattens_batches_in_order():
    content = _response(
        [{"status": "DIFF", "resourceId": "ec2:cluster:prod:myapp-prod"}],
        [
            {"status": NO_DIFF, "resourceId": "ec2:cluster:test:myapp-test"},
            {"status": "MISSING", "resourceId": "ec2:cluster:staging:myapp-staging"},
        ],
    )
    diffs = parse_diff_response(content)
    assert _ids(diffs) == [
        "ec2:cluster:prod:myapp-prod",
        "ec2:cluster:staging:myapp-staging",
        "ec2:cluster:test:myapp-test",
    ]
    assert [d.has_diff for d in diffs] == [True, True, False]


def test_parse_reads_field_diffs_and_resource():
    content = _response(
        [
            {
                "status": "DIFF",
                "resourceId": "ec2:cluster:test:myapp-test",
                "resource": {"kind": "ec2/cluster@v1", "spec": {"moniker": {"app": "myapp", "stack": "test"}}},
                "diff": {
                    "/capacity/max": {"state": "CHANGED", "current": 3, "desired": 5},
                    "/image": {"state": "CHANGED", "current": "ami-1", "desired": "ami-2"},
                },
            }
        ]
    )
    diff = parse_diff_response(content)[0]
    assert diff.resource.name == "myapp-test"
    assert diff.diffs["/capacity/max"].current == "3"
    assert diff.diffs["/capacity/max"].desired == "5"
    assert diff.diffs["/image"].desired == "ami-2"


def test_parse_no_diff_has_empty_field_diffs():
    content = _response([{"status": NO_DIFF, "resourceId": "ec2:cluster:test:myapp-test"}])
    diff = parse_diff_response(content)[0]
    assert not diff.has_diff
    assert diff.diffs == {}


def test_parse_empty_response():
    assert parse_diff_response(b"[]") == []


def test_parse_invalid_json():
    with pytest.raises(InvalidContentError) as exc_info:
        parse_diff_response(b"<html>gateway timeout</html>")
    assert exc_info.value.content == b"<html>gateway timeout</html>"


def test_parse_rejects_non_list():
    with pytest.raises(InvalidContentError):
        parse_diff_response(b'{"resourceDiffs": []}')
