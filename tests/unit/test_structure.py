"""Unit tests for the writable tree structure."""
import json
import os

import pytest

from distribution.errors import StructureError
from distribution.structure import (
    DirectoryNode,
    FileNode,
    NodeState,
    PathContext,
    build_index_directory,
    build_index_file,
    file_paths,
    render_index,
    walk,
)


class TestPathContext:
    """Test the immutable path context."""

    def test_push_does_not_mutate(self):
        """Pushing returns a new context and leaves the original alone."""
        base = PathContext().push("a")
        left = base.push("b")
        right = base.push("c")

        assert base.segments == ("a",)
        assert left.segments == ("a", "b")
        assert right.segments == ("a", "c")

    def test_resolve_uses_platform_separator(self):
        ctx = PathContext().push("diagnosis-keys").push("country").push("index")
        assert ctx.resolve() == os.sep.join(["diagnosis-keys", "country", "index"])

    def test_empty_context_resolves_to_empty_string(self):
        assert PathContext().resolve() == ""
        assert len(PathContext()) == 0

    def test_root_anchors_absolute_path(self, tmp_path):
        ctx = PathContext.root(tmp_path).push("x")
        assert ctx.resolve() == str(tmp_path / "x")


class TestWritableNodes:
    """Test the prepare/write lifecycle of files and directories."""

    def test_write_before_prepare_fails(self):
        """Writing an unprepared node is a programming error."""
        with pytest.raises(StructureError):
            FileNode("index", b"[]").write()
        with pytest.raises(StructureError):
            DirectoryNode("d", [FileNode("index", b"[]")]).write()

    def test_path_before_prepare_fails(self):
        with pytest.raises(StructureError):
            FileNode("index", b"").path

    def test_state_transitions(self, tmp_path):
        file_node = FileNode("index", b"payload")
        directory = DirectoryNode("d", [file_node])
        assert directory.state is NodeState.UNPREPARED

        directory.prepare(PathContext.root(tmp_path))
        assert directory.state is NodeState.PREPARED
        assert file_node.state is NodeState.PREPARED

        directory.write()
        assert directory.state is NodeState.WRITTEN
        assert file_node.state is NodeState.WRITTEN
        assert (tmp_path / "d" / "index").read_bytes() == b"payload"

    def test_prepare_after_write_fails(self, tmp_path):
        node = FileNode("f", b"x")
        node.prepare(PathContext.root(tmp_path))
        node.write()
        with pytest.raises(StructureError):
            node.prepare(PathContext.root(tmp_path))

    def test_prepare_twice_rederives_paths(self, tmp_path):
        node = DirectoryNode("d", [FileNode("f", b"x")])
        node.prepare(PathContext.root(tmp_path / "first"))
        node.prepare(PathContext.root(tmp_path))
        assert node.path == str(tmp_path / "d")

    def test_file_write_overwrites(self, tmp_path):
        (tmp_path / "f").write_bytes(b"old content")
        node = FileNode("f", b"new")
        node.prepare(PathContext.root(tmp_path))
        node.write()
        assert (tmp_path / "f").read_bytes() == b"new"

    def test_duplicate_sibling_rejected(self):
        directory = DirectoryNode("d", [FileNode("index", b"")])
        with pytest.raises(StructureError):
            directory.add(DirectoryNode("index"))

    @pytest.mark.parametrize("name", ["", "a/b", ".", ".."])
    def test_invalid_segment_rejected(self, name):
        with pytest.raises(StructureError):
            FileNode(name, b"")

    def test_add_after_prepare_rejected(self, tmp_path):
        directory = DirectoryNode("d")
        directory.prepare(PathContext.root(tmp_path))
        with pytest.raises(StructureError):
            directory.add(FileNode("f", b""))

    def test_empty_directory_not_materialized(self, tmp_path):
        """Directories without any file beneath them leave no trace on disk."""
        root = DirectoryNode("root", [DirectoryNode("empty", [DirectoryNode("nested")]), FileNode("f", b"x")])
        root.prepare(PathContext.root(tmp_path))
        root.write()

        assert (tmp_path / "root" / "f").exists()
        assert not (tmp_path / "root" / "empty").exists()

    def test_skipped_subtree_is_marked_written(self, tmp_path):
        nested = DirectoryNode("nested")
        root = DirectoryNode("root", [DirectoryNode("empty", [nested])])
        root.prepare(PathContext.root(tmp_path))
        root.write()

        assert [node.state for node in walk(root)] == [NodeState.WRITTEN] * 3
        assert not (tmp_path / "root").exists()
        with pytest.raises(StructureError):
            nested.prepare(PathContext.root(tmp_path))

    def test_walk_and_file_paths(self):
        """Structure can be inspected without touching disk."""
        root = DirectoryNode("a", [FileNode("index", b""), DirectoryNode("b", [FileNode("index", b"")])])

        assert [n.name for n in walk(root)] == ["a", "index", "b", "index"]
        assert file_paths(root) == sorted([os.path.join("a", "index"), os.path.join("a", "b", "index")])

    def test_walk_rejects_foreign_nodes(self):
        with pytest.raises(TypeError):
            list(walk("not-a-node"))


class TestIndex:
    """Test index file rendering and index directories."""

    def test_render_sorted_unique_strings(self):
        assert json.loads(render_index(["1970-01-02", "1970-01-01", "1970-01-01"])) == ["1970-01-01", "1970-01-02"]

    def test_render_numeric_hours(self):
        """Hours sort numerically, not lexicographically."""
        assert json.loads(render_index([10, 2, 0])) == [0, 2, 10]

    def test_render_empty(self):
        assert render_index([]) == b"[]"

    def test_render_rejects_mixed_types(self):
        with pytest.raises(TypeError):
            render_index(["1", 2])

    def test_build_index_file_name(self):
        node = build_index_file(["DE"])
        assert node.name == "index"
        assert json.loads(node.payload) == ["DE"]

    def test_index_directory_matches_children(self):
        directory = build_index_directory("hour", {3: DirectoryNode("3"), 1: DirectoryNode("1")})

        assert [c.name for c in directory.children] == ["index", "1", "3"]
        assert json.loads(directory.get("index").payload) == [1, 3]

    def test_index_directory_rejects_mismatched_child(self):
        with pytest.raises(ValueError):
            build_index_directory("hour", {1: DirectoryNode("2")})

    def test_empty_index_directory_still_writes_index(self, tmp_path):
        directory = build_index_directory("date", {})
        directory.prepare(PathContext.root(tmp_path))
        directory.write()
        assert (tmp_path / "date" / "index").read_bytes() == b"[]"
