"""Writable tree structure: path context, file/directory nodes, index files."""

from distribution.structure.context import PathContext
from distribution.structure.index import INDEX_FILE_NAME, build_index_directory, build_index_file, render_index
from distribution.structure.writable import DirectoryNode, FileNode, NodeState, Writable, file_paths, walk

__all__ = [
    "DirectoryNode",
    "FileNode",
    "INDEX_FILE_NAME",
    "NodeState",
    "PathContext",
    "Writable",
    "build_index_directory",
    "build_index_file",
    "file_paths",
    "render_index",
    "walk",
]
