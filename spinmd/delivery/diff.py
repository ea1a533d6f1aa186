"""Parsing and ordering of delivery config diff responses."""

import functools
import json
from dataclasses import dataclass, field

from spinmd.delivery.types import DeliveryResource
from spinmd.errors import InvalidContentError

NO_DIFF = "NO_DIFF"


@dataclass
class ResourceDiff:
    """One field that differs between the desired and the current state."""

    state: str = ""
    current: str = ""
    desired: str = ""

    @classmethod
    def from_dict(cls, d) -> "ResourceDiff":
        d = d if isinstance(d, dict) else {}
        return cls(
            state=_text(d.get("state")),
            current=_text(d.get("current")),
            desired=_text(d.get("desired")),
        )


@dataclass
class ManagedResourceDiff:
    """Diff status of one managed resource, keyed by field name in ``diffs``."""

    status: str = ""
    resource_id: str = ""
    resource: DeliveryResource = field(default_factory=DeliveryResource)
    diffs: dict[str, ResourceDiff] = field(default_factory=dict)

    @property
    def has_diff(self) -> bool:
        return self.status != NO_DIFF

    @classmethod
    def from_dict(cls, d) -> "ManagedResourceDiff":
        d = d if isinstance(d, dict) else {}
        diffs = d.get("diff") if isinstance(d.get("diff"), dict) else {}
        return cls(
            status=_text(d.get("status")),
            resource_id=_text(d.get("resourceId")),
            resource=DeliveryResource.from_dict(d.get("resource")),
            diffs={name: ResourceDiff.from_dict(value) for name, value in diffs.items()},
        )


def _text(value) -> str:
    """Diff values may be any JSON type; scalars keep their text, the rest is re-encoded."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)


def _compare_resource_ids(a: str, b: str) -> int:
    parts_a = a.split(":")
    parts_b = b.split(":")
    if parts_a[0] == parts_b[0] and len(parts_a) > 2 and len(parts_b) > 2 and parts_a[2] != parts_b[2]:
        a, b = parts_a[2], parts_b[2]
    return (a > b) - (a < b)


def sort_diffs(diffs: list[ManagedResourceDiff]) -> list[ManagedResourceDiff]:
    """Order diffs by resource ID.

    IDs of the same resource type (first ``:`` segment) with at least three
    segments are ordered by their third segment, so diffs of one resource
    family stay adjacent.
    """
    key = functools.cmp_to_key(_compare_resource_ids)
    return sorted(diffs, key=lambda d: key(d.resource_id))


def parse_diff_response(content: bytes) -> list[ManagedResourceDiff]:
    """Flatten the per-account ``resourceDiffs`` batches of a diff response and sort them.

    Raises:
        InvalidContentError: if the response is not the expected JSON list.
    """
    try:
        batches = json.loads(content)
    except ValueError as e:
        raise InvalidContentError(content, e) from e
    if not isinstance(batches, list):
        raise InvalidContentError(content, ValueError("expected a JSON list of diff batches"))

    diffs = []
    for batch in batches:
        if not isinstance(batch, dict):
            continue
        diffs.extend(ManagedResourceDiff.from_dict(d) for d in batch.get("resourceDiffs") or [])
    return sort_diffs(diffs)
