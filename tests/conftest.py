"""Pytest configuration and shared fixtures."""
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from distribution.assembly.artifact import ExportArtifactEncoder, HmacSigner
from distribution.domain import DiagnosisKey, Export, ExportBatch, ExportBatchStatus, ExportConfiguration
from distribution.persistence.models import DistributionBase


@pytest.fixture
def make_key():
    """Factory for diagnosis keys with distinct key data per timestamp."""
    def _make(submission_timestamp: int, **kwargs) -> DiagnosisKey:
        key_data = kwargs.pop("key_data", submission_timestamp.to_bytes(16, "big", signed=True))
        return DiagnosisKey(key_data=key_data, submission_timestamp=submission_timestamp, **kwargs)
    return _make


@pytest.fixture
def export_configuration():
    """Export configuration valid from two days ago until two days from now."""
    now = datetime.now(timezone.utc)
    return ExportConfiguration(config_id=1, from_timestamp=now - timedelta(days=2), thru_timestamp=now + timedelta(days=2))


@pytest.fixture
def export_batch(export_configuration):
    return ExportBatch(
        from_timestamp=export_configuration.from_timestamp,
        thru_timestamp=export_configuration.thru_timestamp,
        status=ExportBatchStatus.OPEN,
        configuration=export_configuration,
    )


@pytest.fixture
def hourly_keys(make_key):
    """30 keys, one per hour from 1970-01-01 00:00 UTC (1 full day + 6 hours)."""
    return [make_key(hour) for hour in range(30)]


@pytest.fixture
def exports(hourly_keys, export_batch):
    return [Export.of(hourly_keys, export_batch)]


@pytest.fixture
def signer():
    return HmacSigner(b"test-secret")


@pytest.fixture
def encoder(signer):
    return ExportArtifactEncoder(signer=signer)


@pytest.fixture
def list_files():
    """Relative paths of all files below a directory."""
    def _list(root: Path) -> set:
        root = Path(root)
        return {
            os.path.relpath(os.path.join(dirpath, name), root)
            for dirpath, _, names in os.walk(root)
            for name in names
        }
    return _list


@pytest.fixture(scope="function")
def session_factory():
    """In-memory SQLite database with the bookkeeping tables."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    DistributionBase.metadata.create_all(engine)
    try:
        yield sessionmaker(bind=engine, autoflush=False)
    finally:
        DistributionBase.metadata.drop_all(engine)
        engine.dispose()
