"""Export batch registry helpers.

Keeps bookkeeping explicit: callers pass the session, helpers flush but
never commit.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from distribution.domain import (
    DiagnosisKey,
    Export,
    ExportBatch,
    ExportBatchStatus,
    ExportConfiguration,
    ensure_utc,
    hours_since_epoch,
)
from distribution.persistence.models import DiagnosisKeyRecord, ExportBatchRecord, ExportConfigurationRecord


def _naive_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; store UTC without it
    return ensure_utc(value).replace(tzinfo=None)


def create_export_configuration(
    db: Session,
    *,
    from_timestamp: datetime,
    thru_timestamp: datetime,
) -> ExportConfigurationRecord:
    if ensure_utc(thru_timestamp) <= ensure_utc(from_timestamp):
        raise ValueError("thru_timestamp must be after from_timestamp")
    row = ExportConfigurationRecord(
        from_timestamp=_naive_utc(from_timestamp),
        thru_timestamp=_naive_utc(thru_timestamp),
    )
    db.add(row)
    db.flush()
    return row


def open_export_batch(
    db: Session,
    *,
    configuration_id: int,
    from_timestamp: Optional[datetime] = None,
    thru_timestamp: Optional[datetime] = None,
) -> ExportBatchRecord:
    """Open a batch; the window defaults to the configuration's window."""

    config = db.query(ExportConfigurationRecord).filter(ExportConfigurationRecord.id == configuration_id).one()
    row = ExportBatchRecord(
        configuration_id=config.id,
        from_timestamp=_naive_utc(from_timestamp) if from_timestamp else config.from_timestamp,
        thru_timestamp=_naive_utc(thru_timestamp) if thru_timestamp else config.thru_timestamp,
        status=ExportBatchStatus.OPEN.value,
    )
    db.add(row)
    db.flush()
    return row


def add_diagnosis_keys(db: Session, keys: Iterable[DiagnosisKey]) -> int:
    """Store keys not yet known (by key_data). Returns how many were added."""

    added = 0
    seen = set()
    for key in keys:
        if key.key_data in seen:
            continue
        seen.add(key.key_data)
        exists = db.query(DiagnosisKeyRecord.id).filter(DiagnosisKeyRecord.key_data == key.key_data).first()
        if exists:
            continue
        db.add(
            DiagnosisKeyRecord(
                key_data=key.key_data,
                submission_timestamp=key.submission_timestamp,
                rolling_start_number=key.rolling_start_number,
                rolling_period=key.rolling_period,
                transmission_risk_level=key.transmission_risk_level,
            )
        )
        added += 1
    db.flush()
    return added


def list_batches(db: Session, statuses: Optional[Iterable[ExportBatchStatus]] = None) -> List[ExportBatchRecord]:
    """Batches ordered by window start, optionally restricted to some statuses."""

    q = db.query(ExportBatchRecord)
    if statuses is not None:
        q = q.filter(ExportBatchRecord.status.in_([s.value for s in statuses]))
    return q.order_by(ExportBatchRecord.from_timestamp, ExportBatchRecord.id).all()


def list_open_batches(db: Session) -> List[ExportBatchRecord]:
    return list_batches(db, [ExportBatchStatus.OPEN])


def to_domain_configuration(row: ExportConfigurationRecord) -> ExportConfiguration:
    return ExportConfiguration(
        config_id=row.id,
        from_timestamp=row.from_timestamp,
        thru_timestamp=row.thru_timestamp,
    )


def to_domain_batch(row: ExportBatchRecord) -> ExportBatch:
    return ExportBatch(
        from_timestamp=row.from_timestamp,
        thru_timestamp=row.thru_timestamp,
        status=ExportBatchStatus(row.status),
        configuration=to_domain_configuration(row.configuration),
    )


def load_export(db: Session, batch_row: ExportBatchRecord) -> Export:
    """Keys submitted within the batch window [from, thru), as an Export."""

    batch = to_domain_batch(batch_row)
    from_hour = hours_since_epoch(batch.from_timestamp)
    thru_hour = hours_since_epoch(batch.thru_timestamp)
    rows = (
        db.query(DiagnosisKeyRecord)
        .filter(
            DiagnosisKeyRecord.submission_timestamp >= from_hour,
            DiagnosisKeyRecord.submission_timestamp < thru_hour,
        )
        .order_by(DiagnosisKeyRecord.submission_timestamp, DiagnosisKeyRecord.id)
        .all()
    )
    keys = [
        DiagnosisKey(
            key_data=r.key_data,
            submission_timestamp=r.submission_timestamp,
            rolling_start_number=r.rolling_start_number,
            rolling_period=r.rolling_period,
            transmission_risk_level=r.transmission_risk_level,
        )
        for r in rows
    ]
    return Export.of(keys, batch)


def close_export_batch(db: Session, *, batch_id: int, status: ExportBatchStatus, error: str = "") -> None:
    if status is ExportBatchStatus.OPEN:
        raise ValueError("A batch cannot be closed with status OPEN")
    row = db.query(ExportBatchRecord).filter(ExportBatchRecord.id == batch_id).one()
    row.status = status.value
    row.error = error
    row.finished_at = _naive_utc(datetime.now(timezone.utc))
    db.add(row)
