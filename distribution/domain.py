"""Domain types shared by the assembly engine and its collaborators.

Timestamps on keys are whole hours since the Unix epoch. Batch and
configuration windows are UTC datetimes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import FrozenSet, Iterable, Tuple

HOURS_PER_DAY = 24
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ExportBatchStatus(str, Enum):
    """Lifecycle of an export batch."""

    OPEN = "open"
    CLOSED = "closed"
    ERROR = "error"


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hours_since_epoch(value: datetime) -> int:
    """Whole hours between the epoch and `value`, floored."""

    return int((ensure_utc(value) - EPOCH) // timedelta(hours=1))


def day_to_date(day: int) -> date:
    return (EPOCH + timedelta(days=day)).date()


@dataclass(frozen=True)
class DiagnosisKey:
    key_data: bytes
    submission_timestamp: int  # hours since epoch
    rolling_start_number: int = 0
    rolling_period: int = 144
    transmission_risk_level: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.key_data, (bytes, bytearray)) or not self.key_data:
            raise ValueError("key_data must be non-empty bytes")
        object.__setattr__(self, "key_data", bytes(self.key_data))
        object.__setattr__(self, "submission_timestamp", int(self.submission_timestamp))

    @property
    def day(self) -> int:
        return self.submission_timestamp // HOURS_PER_DAY

    @property
    def hour(self) -> int:
        return self.submission_timestamp % HOURS_PER_DAY


@dataclass(frozen=True)
class ExportConfiguration:
    """Signing/export policy with a validity window [from, thru)."""

    config_id: int
    from_timestamp: datetime
    thru_timestamp: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_timestamp", ensure_utc(self.from_timestamp))
        object.__setattr__(self, "thru_timestamp", ensure_utc(self.thru_timestamp))
        if self.thru_timestamp <= self.from_timestamp:
            raise ValueError("thru_timestamp must be after from_timestamp")


@dataclass(frozen=True)
class ExportBatch:
    from_timestamp: datetime
    thru_timestamp: datetime
    status: ExportBatchStatus
    configuration: ExportConfiguration

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_timestamp", ensure_utc(self.from_timestamp))
        object.__setattr__(self, "thru_timestamp", ensure_utc(self.thru_timestamp))
        object.__setattr__(self, "status", ExportBatchStatus(self.status))

    def describe(self) -> dict:
        return {
            "config_id": self.configuration.config_id,
            "from": self.from_timestamp.isoformat().replace("+00:00", "Z"),
            "thru": self.thru_timestamp.isoformat().replace("+00:00", "Z"),
        }


@dataclass(frozen=True)
class Export:
    """A set of keys paired with the batch they are exported under."""

    batch: ExportBatch
    keys: FrozenSet[DiagnosisKey] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "keys", frozenset(self.keys))

    @classmethod
    def of(cls, keys: Iterable[DiagnosisKey], batch: ExportBatch) -> "Export":
        return cls(batch=batch, keys=frozenset(keys))


def sort_keys(keys: Iterable[DiagnosisKey]) -> Tuple[DiagnosisKey, ...]:
    return tuple(sorted(keys, key=lambda k: (k.submission_timestamp, k.key_data)))
