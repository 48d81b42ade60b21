"""The `diagnosis-keys` subtree.

    diagnosis-keys/country/index
    diagnosis-keys/country/<COUNTRY>/date/index
    diagnosis-keys/country/<COUNTRY>/date/<DATE>/...

Country and date index files are always present for every supported
country, even when no keys exist yet.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

from distribution.assembly.artifact import ExportArtifactEncoder
from distribution.assembly.buckets import BucketContext, build_date_bucket
from distribution.assembly.partitioning import CountryPartition, TimePartitioner, partition_exports
from distribution.domain import Export
from distribution.structure import DirectoryNode, build_index_directory

logger = logging.getLogger(__name__)

DIAGNOSIS_KEYS_DIRECTORY = "diagnosis-keys"
COUNTRY_DIRECTORY = "country"
DATE_DIRECTORY = "date"
DEFAULT_COUNTRIES = ("DE",)


def build_country_directory(
    country: CountryPartition,
    encoder: ExportArtifactEncoder,
    partitioner: TimePartitioner,
    reference_hour: Optional[int],
) -> DirectoryNode:
    """`<COUNTRY>/date/...` for one supported country."""

    ctx = BucketContext(country=country, encoder=encoder)
    partitions = partitioner.partition(country.keys, reference_hour=reference_hour)
    dates: Dict[str, DirectoryNode] = {p.date: build_date_bucket(ctx, p) for p in partitions}
    logger.info(
        "Country %s: %d keys, %d dates (%d complete)",
        country.country,
        len(country.keys),
        len(partitions),
        sum(1 for p in partitions if p.complete),
    )
    return DirectoryNode(country.country, [build_index_directory(DATE_DIRECTORY, dates)])


def build_diagnosis_keys_directory(
    exports: Sequence[Export],
    encoder: ExportArtifactEncoder,
    *,
    countries: Sequence[str] = DEFAULT_COUNTRIES,
    partitioner: Optional[TimePartitioner] = None,
) -> DirectoryNode:
    """Assemble the full diagnosis-keys tree for `exports`.

    Artifacts are encoded while the tree is built, so a signing failure
    aborts before anything reaches the filesystem.
    """

    if not countries:
        raise ValueError("At least one supported country is required")
    partitioner = partitioner or TimePartitioner()
    country_partitions = partition_exports(exports, countries)
    all_keys = country_partitions[0].keys
    reference_hour = partitioner.reference_for(all_keys)
    logger.info(
        "Assembling %s for %d exports, %d keys, reference hour %s",
        DIAGNOSIS_KEYS_DIRECTORY,
        len(exports),
        len(all_keys),
        reference_hour,
    )

    country_dirs = {
        c.country: build_country_directory(c, encoder, partitioner, reference_hour) for c in country_partitions
    }
    return DirectoryNode(DIAGNOSIS_KEYS_DIRECTORY, [build_index_directory(COUNTRY_DIRECTORY, country_dirs)])
