"""Materialize a prepared tree, optionally writing files on a thread pool."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List

from distribution.errors import StructureError
from distribution.structure import DirectoryNode, FileNode, NodeState, Writable, walk

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WriteResult:
    files_written: int
    directories_created: int


class TreeWriter:
    """Writes a prepared tree.

    Directories are created up front on the calling thread, parents first;
    file payloads are then written concurrently. With `max_workers <= 1` the
    tree writes itself sequentially.
    """

    def __init__(self, max_workers: int = 4):
        self.max_workers = max_workers

    def write(self, root: Writable) -> WriteResult:
        nodes = list(walk(root))
        unprepared = [n.name for n in nodes if n.state is NodeState.UNPREPARED]
        if unprepared:
            raise StructureError(f"Tree must be prepared before writing (unprepared: {unprepared[:5]})")

        files: List[FileNode] = []
        directories: List[DirectoryNode] = []
        for node in nodes:
            if isinstance(node, FileNode):
                files.append(node)
            elif not node.is_empty():
                directories.append(node)

        if self.max_workers <= 1:
            root.write()
        else:
            self._write_concurrently(nodes, files, directories)

        logger.info("Wrote %d files in %d directories", len(files), len(directories))
        return WriteResult(files_written=len(files), directories_created=len(directories))

    def _write_concurrently(
        self,
        nodes: List[Writable],
        files: List[FileNode],
        directories: List[DirectoryNode],
    ) -> None:
        for directory in directories:
            os.makedirs(directory.path, exist_ok=True)

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(f.write) for f in files]
        for future in futures:
            # re-raise the first failure, in tree order
            future.result()

        for node in nodes:
            if isinstance(node, DirectoryNode):
                node.state = NodeState.WRITTEN
