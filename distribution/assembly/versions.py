"""Versioned API root wrapping published subtrees."""

from __future__ import annotations

from typing import Iterable

from distribution.structure import DirectoryNode, Writable, build_index_directory

VERSION_DIRECTORY = "version"


def build_version_directory(version: str, children: Iterable[Writable]) -> DirectoryNode:
    """`version/index` plus `version/<version>/<children...>`."""

    return build_index_directory(VERSION_DIRECTORY, {version: DirectoryNode(version, children)})
