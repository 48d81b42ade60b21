"""SQLAlchemy models for export configurations, batches and stored keys.

Point `DB_URL` at SQLite for local runs or Postgres in production.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, LargeBinary, String, Text
from sqlalchemy.orm import declarative_base, relationship


DistributionBase = declarative_base()


class ExportConfigurationRecord(DistributionBase):
    __tablename__ = "dist_export_configurations"

    id = Column(Integer, primary_key=True)
    from_timestamp = Column(DateTime, nullable=False)
    thru_timestamp = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    batches = relationship("ExportBatchRecord", back_populates="configuration", cascade="all, delete-orphan")


class ExportBatchRecord(DistributionBase):
    __tablename__ = "dist_export_batches"

    id = Column(Integer, primary_key=True)
    configuration_id = Column(Integer, ForeignKey("dist_export_configurations.id"), nullable=False, index=True)
    from_timestamp = Column(DateTime, nullable=False)
    thru_timestamp = Column(DateTime, nullable=False)

    status = Column(String, nullable=False, default="open", index=True)  # open/closed/error
    error = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    finished_at = Column(DateTime)

    configuration = relationship("ExportConfigurationRecord", back_populates="batches")


class DiagnosisKeyRecord(DistributionBase):
    __tablename__ = "dist_diagnosis_keys"

    id = Column(Integer, primary_key=True)
    key_data = Column(LargeBinary, nullable=False, unique=True)
    submission_timestamp = Column(Integer, nullable=False, index=True)  # hours since epoch
    rolling_start_number = Column(Integer, nullable=False, default=0)
    rolling_period = Column(Integer, nullable=False, default=144)
    transmission_risk_level = Column(Integer, nullable=False, default=0)
