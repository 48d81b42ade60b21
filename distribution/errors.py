"""Error types raised while assembling the distribution tree."""

from __future__ import annotations


class DistributionError(Exception):
    """Base class for distribution assembly errors."""


class StructureError(DistributionError):
    """The writable tree was used out of order or built inconsistently."""


class ArtifactError(DistributionError):
    """An export artifact could not be produced for a bucket."""

    def __init__(self, bucket: str, message: str):
        super().__init__(f"{bucket}: {message}")
        self.bucket = bucket
