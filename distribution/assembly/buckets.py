"""Bucket directories for dates and hours."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Collection, Dict

from distribution.assembly.artifact import ExportArtifactEncoder
from distribution.assembly.partitioning import CountryPartition, DatePartition
from distribution.domain import HOURS_PER_DAY, DiagnosisKey
from distribution.errors import ArtifactError
from distribution.logging_config import log_context
from distribution.structure import INDEX_FILE_NAME, DirectoryNode, FileNode, build_index_directory

logger = logging.getLogger(__name__)

HOUR_DIRECTORY = "hour"


@dataclass(frozen=True)
class BucketContext:
    """Country-level inputs shared by every bucket of that country."""

    country: CountryPartition
    encoder: ExportArtifactEncoder

    def artifact(self, keys: Collection[DiagnosisKey], *, bucket: str, start_hour: int, end_hour: int) -> FileNode:
        if not keys:
            raise ValueError(f"Bucket {bucket} has no keys")
        try:
            with log_context(bucket=bucket):
                logger.debug("Encoding %d keys", len(keys))
                payload = self.encoder.encode(
                    keys,
                    region=self.country.country,
                    start_hour=start_hour,
                    end_hour=end_hour,
                    batches=self.country.batches_for(keys),
                )
        except Exception as exc:
            raise ArtifactError(bucket, f"could not produce export artifact: {exc}") from exc
        return FileNode(INDEX_FILE_NAME, payload)


def build_hour_bucket(ctx: BucketContext, partition: DatePartition, hour: int) -> DirectoryNode:
    keys = partition.hours.get(hour, ())
    start = partition.start_hour + hour
    bucket = f"{ctx.country.country}/{partition.date}/{HOUR_DIRECTORY}/{hour}"
    directory = DirectoryNode(str(hour))
    directory.add(ctx.artifact(keys, bucket=bucket, start_hour=start, end_hour=start + 1))
    return directory


def build_date_bucket(ctx: BucketContext, partition: DatePartition) -> DirectoryNode:
    """Directory for one date.

    Layout:
      <date>/index            daily aggregate, only when the date is complete
      <date>/hour/index       hours with keys
      <date>/hour/<h>/index   hourly artifact
    """

    if not partition.keys:
        raise ValueError(f"Date {partition.date} has no keys")

    directory = DirectoryNode(partition.date)
    if partition.complete:
        directory.add(
            ctx.artifact(
                partition.keys,
                bucket=f"{ctx.country.country}/{partition.date}",
                start_hour=partition.start_hour,
                end_hour=partition.start_hour + HOURS_PER_DAY,
            )
        )
    else:
        logger.debug("Date %s is not complete; publishing hourly buckets only", partition.date)

    hours: Dict[int, DirectoryNode] = {
        hour: build_hour_bucket(ctx, partition, hour) for hour, keys in partition.hours.items() if keys
    }
    directory.add(build_index_directory(HOUR_DIRECTORY, hours))
    return directory
