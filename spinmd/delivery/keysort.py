"""Stable key ordering for delivery config documents."""

from ruamel.yaml.comments import CommentedMap

from spinmd.delivery.nodes import attach_comments_to_keys

# Keys listed here float to the top of every mapping, in this order.
CONFIG_KEY_SORT_PRIORITY = [
    "kind",
    "name",
    "type",
    "moniker",
    "artifactReference",
    "container",
    "locations",
    "application",
    "artifacts",
    "environments",
]


def config_key_order(keys) -> list:
    """Priority keys first in priority order, then the rest ascending."""
    keys = list(keys)
    first = [k for k in CONFIG_KEY_SORT_PRIORITY if k in keys]
    rest = sorted((k for k in keys if k not in CONFIG_KEY_SORT_PRIORITY), key=str)
    return first + rest


def sort_config_keys(node):
    """Reorder every mapping in the tree in place.

    Keys are moved rather than re-inserted, so end-of-line comments stay
    with their key. Before a mapping is reordered, comment lines are moved
    onto the key written below them, so they follow it too.
    """
    if isinstance(node, CommentedMap):
        order = config_key_order(node.keys())
        if order != list(node.keys()):
            attach_comments_to_keys(node, recursive=False)
            for key in order:
                node.move_to_end(key)
        for value in node.values():
            sort_config_keys(value)
    elif isinstance(node, list):
        for item in node:
            sort_config_keys(item)
