"""Assembly of the diagnosis-key distribution tree."""

from distribution.assembly.artifact import ExportArtifactEncoder, HmacSigner, Signer
from distribution.assembly.diagnosis_keys import DIAGNOSIS_KEYS_DIRECTORY, build_diagnosis_keys_directory
from distribution.assembly.partitioning import DatePartition, TimePartitioner, partition_exports
from distribution.assembly.versions import build_version_directory
from distribution.assembly.writer import TreeWriter, WriteResult

__all__ = [
    "DIAGNOSIS_KEYS_DIRECTORY",
    "DatePartition",
    "ExportArtifactEncoder",
    "HmacSigner",
    "Signer",
    "TimePartitioner",
    "TreeWriter",
    "WriteResult",
    "build_diagnosis_keys_directory",
    "build_version_directory",
    "partition_exports",
]
