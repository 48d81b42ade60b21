"""Immutable path context threaded through tree preparation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union


@dataclass(frozen=True)
class PathContext:
    """Append-only stack of path segments.

    `push` returns a new context, so sibling subtrees can share a prefix
    without seeing each other's segments.
    """

    segments: Tuple[str, ...] = ()

    @classmethod
    def root(cls, base: Union[str, Path]) -> "PathContext":
        return cls(segments=(str(base),))

    def push(self, segment: str) -> "PathContext":
        return PathContext(segments=self.segments + (segment,))

    def resolve(self) -> str:
        if not self.segments:
            return ""
        return os.path.join(*self.segments)

    def __len__(self) -> int:
        return len(self.segments)
