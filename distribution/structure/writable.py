"""File and directory nodes with a two-phase prepare/write lifecycle.

A tree is first prepared (every node resolves its absolute path from the
context it receives) and only then written. Nodes hold no parent pointers;
the path context carries everything a node needs to locate itself.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from distribution.errors import StructureError
from distribution.structure.context import PathContext

logger = logging.getLogger(__name__)


class NodeState(str, Enum):
    UNPREPARED = "unprepared"
    PREPARED = "prepared"
    WRITTEN = "written"


def _validate_segment(name: str) -> str:
    if not isinstance(name, str) or not name:
        raise StructureError(f"Invalid path segment: {name!r}")
    if os.sep in name or (os.altsep and os.altsep in name) or name in (".", ".."):
        raise StructureError(f"Path segment must not contain separators: {name!r}")
    return name


class FileNode:
    """A leaf holding a fixed byte payload."""

    def __init__(self, name: str, payload: bytes):
        self.name = _validate_segment(name)
        self.payload = bytes(payload)
        self.state = NodeState.UNPREPARED
        self._context: Optional[PathContext] = None

    def __repr__(self) -> str:
        return f"FileNode({self.name!r}, {len(self.payload)} bytes)"

    def prepare(self, context: PathContext) -> None:
        if self.state is NodeState.WRITTEN:
            raise StructureError(f"File {self.name!r} was already written")
        self._context = context.push(self.name)
        self.state = NodeState.PREPARED

    @property
    def path(self) -> str:
        if self._context is None:
            raise StructureError(f"File {self.name!r} has not been prepared")
        return self._context.resolve()

    def is_empty(self) -> bool:
        return False

    def write(self) -> None:
        if self.state is NodeState.UNPREPARED:
            raise StructureError(f"File {self.name!r} must be prepared before it is written")
        with open(self.path, "wb") as handle:
            handle.write(self.payload)
        self.state = NodeState.WRITTEN


class DirectoryNode:
    """An ordered collection of uniquely named child nodes."""

    def __init__(self, name: str, children: Iterable["Writable"] = ()):
        self.name = _validate_segment(name)
        self.state = NodeState.UNPREPARED
        self._context: Optional[PathContext] = None
        self._children: Dict[str, Writable] = {}
        for child in children:
            self.add(child)

    def __repr__(self) -> str:
        return f"DirectoryNode({self.name!r}, children={list(self._children)})"

    def add(self, child: "Writable") -> "Writable":
        if not isinstance(child, (FileNode, DirectoryNode)):
            raise TypeError(f"Unsupported writable: {child!r}")
        if self.state is not NodeState.UNPREPARED:
            raise StructureError(f"Cannot add {child.name!r} to prepared directory {self.name!r}")
        if child.name in self._children:
            raise StructureError(f"Duplicate entry {child.name!r} in directory {self.name!r}")
        self._children[child.name] = child
        return child

    @property
    def children(self) -> Tuple["Writable", ...]:
        return tuple(self._children.values())

    def get(self, name: str) -> Optional["Writable"]:
        return self._children.get(name)

    @property
    def path(self) -> str:
        if self._context is None:
            raise StructureError(f"Directory {self.name!r} has not been prepared")
        return self._context.resolve()

    def prepare(self, context: PathContext) -> None:
        if self.state is NodeState.WRITTEN:
            raise StructureError(f"Directory {self.name!r} was already written")
        self._context = context.push(self.name)
        for child in self._children.values():
            child.prepare(self._context)
        self.state = NodeState.PREPARED

    def is_empty(self) -> bool:
        """True when no file exists anywhere beneath this directory."""

        return all(child.is_empty() for child in self._children.values())

    def write(self) -> None:
        if self.state is NodeState.UNPREPARED:
            raise StructureError(f"Directory {self.name!r} must be prepared before it is written")
        if not self.is_empty():
            os.makedirs(self.path, exist_ok=True)
            for child in self._children.values():
                child.write()
        else:
            logger.debug("Skipping empty directory %s", self.path)
            # nothing beneath it reaches the disk, but the whole subtree is done
            for node in walk(self):
                node.state = NodeState.WRITTEN
        self.state = NodeState.WRITTEN


Writable = Union[FileNode, DirectoryNode]


def walk(node: Writable) -> Iterator[Writable]:
    """Yield `node` and all its descendants, parents before children."""

    yield node
    if isinstance(node, DirectoryNode):
        for child in node.children:
            yield from walk(child)
    elif not isinstance(node, FileNode):
        raise TypeError(f"Unsupported writable: {node!r}")


def file_paths(node: Writable, context: Optional[PathContext] = None) -> List[str]:
    """Relative paths of every file `node` would write, sorted.

    Works on unprepared trees and never touches the filesystem.
    """

    ctx = (context or PathContext()).push(node.name)
    if isinstance(node, FileNode):
        return [ctx.resolve()]
    if isinstance(node, DirectoryNode):
        paths: List[str] = []
        for child in node.children:
            paths.extend(file_paths(child, ctx))
        return sorted(paths)
    raise TypeError(f"Unsupported writable: {node!r}")
