"""Index files listing the discoverable children of a directory."""

from __future__ import annotations

import json
from typing import Iterable, Mapping, Union

from distribution.structure.writable import DirectoryNode, FileNode

INDEX_FILE_NAME = "index"

Identifier = Union[str, int]


def render_index(identifiers: Iterable[Identifier]) -> bytes:
    """Serialize identifiers as a compact, sorted, duplicate-free JSON array.

    Strings sort lexicographically and ints numerically; mixing both in one
    listing is rejected.
    """

    unique = set(identifiers)
    if any(isinstance(i, bool) or not isinstance(i, (str, int)) for i in unique):
        raise TypeError(f"Index identifiers must be str or int: {sorted(map(repr, unique))}")
    if len({type(i) for i in unique}) > 1:
        raise TypeError("Index identifiers must all share one type")
    return json.dumps(sorted(unique), separators=(",", ":")).encode("utf-8")


def build_index_file(identifiers: Iterable[Identifier]) -> FileNode:
    return FileNode(INDEX_FILE_NAME, render_index(identifiers))


def build_index_directory(name: str, children: Mapping[Identifier, DirectoryNode]) -> DirectoryNode:
    """Directory holding an index of `children` plus the children themselves.

    Each child's name must match its identifier so the listing and the
    directory contents cannot drift apart.
    """

    directory = DirectoryNode(name)
    directory.add(build_index_file(children.keys()))
    for identifier in sorted(children):
        child = children[identifier]
        if child.name != str(identifier):
            raise ValueError(f"Child {child.name!r} does not match index entry {identifier!r}")
        directory.add(child)
    return directory
