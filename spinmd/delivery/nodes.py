"""Format-preserving YAML document tree.

The raw tree is a ruamel.yaml round-trip document: ``CommentedMap`` and
``CommentedSeq`` nodes that keep key order, comments and scalar quoting,
so a hand-edited file survives a load/modify/save cycle.
"""

import io

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.error import CommentMark, YAMLError
from ruamel.yaml.tokens import CommentToken

from spinmd.errors import InvalidContentError


def _round_trip_yaml() -> YAML:
    yaml = YAML()
    yaml.indent(mapping=2, sequence=4, offset=2)
    yaml.preserve_quotes = True
    yaml.width = 4096
    return yaml


def _safe_yaml() -> YAML:
    return YAML(typ="safe", pure=True)


def load_node(content: bytes):
    """Parse bytes into a round-trip node (mapping, sequence or scalar)."""
    try:
        return _round_trip_yaml().load(content)
    except YAMLError as e:
        raise InvalidContentError(content, e) from e


def load_document(content: bytes) -> CommentedMap:
    """Parse a whole document into a round-trip tree rooted at a mapping.

    Empty content yields an empty mapping.

    Raises:
        InvalidContentError: on a YAML error or a non-mapping root.
    """
    node = load_node(content)
    if node is None:
        return CommentedMap()
    if not isinstance(node, CommentedMap):
        raise InvalidContentError(content, ValueError(f"document root is a {type(node).__name__}, not a mapping"))
    return node


def load_data(content: bytes):
    """Parse bytes into plain dicts and lists, using the same YAML 1.2 rules as the tree."""
    try:
        return _safe_yaml().load(content)
    except YAMLError as e:
        raise InvalidContentError(content, e) from e


def dump_document(node) -> bytes:
    stream = io.StringIO()
    _round_trip_yaml().dump(node, stream)
    return stream.getvalue().encode("utf-8")


def to_node(data):
    """Convert plain dicts and lists into round-trip nodes, recursively."""
    if isinstance(data, dict):
        node = CommentedMap()
        for key, value in data.items():
            node[key] = to_node(value)
        return node
    if isinstance(data, (list, tuple)):
        return CommentedSeq(to_node(item) for item in data)
    return data


def ensure_sequence(mapping: CommentedMap, key: str) -> CommentedSeq:
    """Return ``mapping[key]``, first creating it as an empty sequence if absent or null."""
    if mapping.get(key) is None:
        mapping[key] = CommentedSeq()
    return mapping[key]


def set_line_comment(mapping: CommentedMap, key: str, text: str):
    """Set the trailing comment on the line of *key*.

    Only the first line of an existing comment is replaced; comment lines
    that ruamel.yaml keeps in the same token (the lines following the key)
    are left intact.
    """
    entry = mapping.ca.items.get(key)
    token = entry[2] if entry and len(entry) > 2 else None
    if token is None:
        mapping.yaml_add_eol_comment(text, key, column=0)
        return
    _, newline, rest = token.value.partition("\n")
    token.value = f"# {text}{newline}{rest}"


def check_structure(document: CommentedMap):
    """Check the sequences the processor edits in place have the shape it expects.

    ``artifacts``, ``environments`` and each environment's ``resources`` may be
    absent or null, but otherwise must be sequences, and environments must be
    mappings.

    Raises:
        ValueError: naming the first offending key.
    """
    for key in ("artifacts", "environments"):
        value = document.get(key)
        if value is not None and not isinstance(value, CommentedSeq):
            raise ValueError(f"{key} must be a sequence, not a {type(value).__name__}")
    for ix, env in enumerate(document.get("environments") or []):
        if not isinstance(env, CommentedMap):
            raise ValueError(f"environments[{ix}] must be a mapping, not a {type(env).__name__}")
        resources = env.get("resources")
        if resources is not None and not isinstance(resources, CommentedSeq):
            raise ValueError(f"environments[{ix}].resources must be a sequence, not a {type(resources).__name__}")


# ── Comment placement ────────────────────────────────────────────
#
# ruamel.yaml stores a full-line comment at the end of the trailing comment
# of the value emitted just before it, which for a nested value is its
# deepest last scalar. The helpers below move such lines onto the key they
# were written above, so moving, replacing or appending keys keeps them in
# place.


def attach_comments_to_keys(node, recursive=True):
    """Turn comment lines that follow a mapping value into comments before the next key.

    Lines after a mapping's last value become the mapping's end comment.
    The rendered document is unchanged.
    """
    if isinstance(node, CommentedMap):
        keys = list(node.keys())
        for position, key in enumerate(keys):
            lines = _detach_following_lines(node, key)
            if not lines:
                continue
            token = CommentToken(lines, CommentMark(0))
            if position + 1 < len(keys):
                entry = node.ca.items.setdefault(keys[position + 1], [None, None, None, None])
                entry[1] = [token] + list(entry[1] or [])
            else:
                # ca.end is only emitted when the mapping has a start comment slot
                if node.ca.comment is None:
                    node.ca.comment = [None, None]
                node.ca.end = [token] + list(node.ca.end or [])
        children = node.values()
    elif isinstance(node, list):
        children = node
    else:
        return
    if recursive:
        for child in children:
            attach_comments_to_keys(child)


def _detach_following_lines(mapping: CommentedMap, key) -> str:
    """Strip and return the comment lines after the line holding *key*'s value."""
    holder, index = _trailing_slot(mapping, key)
    token = holder[index] if holder else None
    if token is None:
        return ""
    head, _, rest = token.value.partition("\n")
    if head:
        token.value = head + "\n"
    else:
        holder[index] = None
    if rest and not rest.endswith("\n"):
        rest += "\n"
    return rest


def _trailing_slot(node, key):
    """``(holder, index)`` of the comment emitted right after ``node[key]``; holder may be None."""
    value = node[key]
    if isinstance(value, (CommentedMap, CommentedSeq)):
        if len(value) and not value.fa.flow_style():
            last = len(value) - 1 if isinstance(value, CommentedSeq) else next(reversed(value))
            return _trailing_slot(value, last)
        return value.ca.comment, 0
    entry = node.ca.items.get(key)
    if isinstance(node, CommentedSeq):
        return entry, 0
    if entry is not None and len(entry) < 3:
        return None, 2
    return entry, 2
