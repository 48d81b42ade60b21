"""Partitioning of diagnosis keys by country, date and hour.

Grouping is done on a small pandas frame of (position, timestamp) rows so
the day/hour arithmetic is vectorized and the grouping order is stable.

A date is "complete" when its whole 24-hour span lies before the reference
hour. Only complete dates get a daily aggregate; the current date is
published hour by hour until it is final.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from distribution.domain import (
    HOURS_PER_DAY,
    DiagnosisKey,
    Export,
    ExportBatch,
    day_to_date,
    hours_since_epoch,
    sort_keys,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatePartition:
    date: str  # YYYY-MM-DD
    day: int  # days since epoch
    keys: Tuple[DiagnosisKey, ...]
    hours: Mapping[int, Tuple[DiagnosisKey, ...]]
    complete: bool

    @property
    def start_hour(self) -> int:
        return self.day * HOURS_PER_DAY

    @property
    def end_hour(self) -> int:
        return (self.day + 1) * HOURS_PER_DAY


@dataclass(frozen=True)
class CountryPartition:
    """Keys destined for one country, plus the batch each key was exported under."""

    country: str
    keys: Tuple[DiagnosisKey, ...]
    owners: Mapping[DiagnosisKey, ExportBatch] = field(default_factory=dict)

    def batches_for(self, keys: Iterable[DiagnosisKey]) -> Tuple[ExportBatch, ...]:
        seen: Dict[ExportBatch, None] = {}
        for key in keys:
            batch = self.owners.get(key)
            if batch is not None:
                seen.setdefault(batch, None)
        return tuple(seen)


def partition_exports(exports: Sequence[Export], countries: Sequence[str]) -> List[CountryPartition]:
    """Split exports per supported country.

    The country axis is static configuration: every supported country
    receives every exported key. A key present in several exports belongs to
    the first one.
    """

    owners: Dict[DiagnosisKey, ExportBatch] = {}
    for export in exports:
        for key in sort_keys(export.keys):
            owners.setdefault(key, export.batch)
    keys = sort_keys(owners)
    return [CountryPartition(country=c, keys=keys, owners=owners) for c in sorted(set(countries))]


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class TimePartitioner:
    """Groups keys into date and hour buckets and decides date completeness.

    Args:
        reference_hour: explicit cut-off in hours since epoch. When omitted the
            cut-off is the earlier of the current hour and the hour after the
            latest submission.
        clock: returns "now"; injectable for tests.
    """

    def __init__(
        self,
        reference_hour: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.reference_hour = reference_hour
        self.clock = clock or _now_utc

    def reference_for(self, keys: Iterable[DiagnosisKey]) -> Optional[int]:
        if self.reference_hour is not None:
            return int(self.reference_hour)
        timestamps = [k.submission_timestamp for k in keys]
        if not timestamps:
            return None
        return min(hours_since_epoch(self.clock()), max(timestamps) + 1)

    @staticmethod
    def is_complete(day: int, reference_hour: Optional[int]) -> bool:
        if reference_hour is None:
            return False
        return (day + 1) * HOURS_PER_DAY <= reference_hour

    @staticmethod
    def frame(keys: Sequence[DiagnosisKey]) -> pd.DataFrame:
        df = pd.DataFrame(
            {
                "position": range(len(keys)),
                "submission_timestamp": [k.submission_timestamp for k in keys],
            },
            dtype="int64",
        )
        df["day"] = df["submission_timestamp"] // HOURS_PER_DAY
        df["hour"] = df["submission_timestamp"] % HOURS_PER_DAY
        return df

    def partition(
        self,
        keys: Iterable[DiagnosisKey],
        *,
        reference_hour: Optional[int] = None,
    ) -> List[DatePartition]:
        """Group `keys` by date, then hour. Dates without keys never appear."""

        ordered = sort_keys(keys)
        if not ordered:
            return []
        reference = reference_hour if reference_hour is not None else self.reference_for(ordered)

        df = self.frame(ordered)
        partitions: List[DatePartition] = []
        for day, df_d in df.groupby("day", sort=True):
            day = int(day)
            hours = {
                int(hour): tuple(ordered[p] for p in df_h["position"])
                for hour, df_h in df_d.groupby("hour", sort=True)
            }
            complete = self.is_complete(day, reference)
            partitions.append(
                DatePartition(
                    date=day_to_date(day).isoformat(),
                    day=day,
                    keys=tuple(ordered[p] for p in df_d["position"]),
                    hours=hours,
                    complete=complete,
                )
            )
            logger.debug(
                "Partitioned %s: %d keys in %d hours (complete=%s)",
                partitions[-1].date,
                len(df_d),
                len(hours),
                complete,
            )
        return partitions
