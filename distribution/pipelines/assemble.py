"""Stored export batches -> signed distribution tree on disk + batch bookkeeping.

Every run regenerates the whole tree from all stored batches, so dates that
were incomplete last time get their daily aggregate and batches that failed
before are published again. The tree is written into a staging directory next
to the output root and renamed into place only after every file exists.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from distribution.assembly.artifact import ExportArtifactEncoder, HmacSigner, Signer
from distribution.assembly.diagnosis_keys import build_diagnosis_keys_directory
from distribution.assembly.partitioning import TimePartitioner
from distribution.assembly.versions import build_version_directory
from distribution.assembly.writer import TreeWriter
from distribution.config import Settings
from distribution.domain import ExportBatchStatus
from distribution.logging_config import log_context
from distribution.persistence.db import create_db_engine, create_session_factory, get_db_context
from distribution.persistence.registry import close_export_batch, list_batches, load_export
from distribution.structure import PathContext

logger = logging.getLogger(__name__)

# Batches not yet published successfully
PENDING_STATUSES = (ExportBatchStatus.OPEN, ExportBatchStatus.ERROR)


@dataclass(frozen=True)
class AssembleResult:
    batches: int
    keys: int
    files_written: int
    output_root: Path


def _default_signer(settings: Settings) -> Signer:
    if not settings.signing.is_configured:
        raise ValueError("Signing secret is not configured (set SIGNING_SECRET)")
    return HmacSigner(settings.signing.secret, algorithm=settings.signing.algorithm)


def _swap_into_place(staging: Path, root: Path) -> None:
    """Replace `root` with `staging`; the old tree is removed afterwards."""
    previous = staging.with_name(staging.name + ".previous")
    if root.exists():
        os.replace(root, previous)
    os.replace(staging, root)
    if previous.exists():
        shutil.rmtree(previous)


def assemble_open_batches(
    settings: Optional[Settings] = None,
    *,
    signer: Optional[Signer] = None,
    output_root: Optional[Path] = None,
    session_factory=None,
    partitioner: Optional[TimePartitioner] = None,
) -> AssembleResult:
    """Republish every stored batch and close the pending ones.

    Pending means OPEN, or ERROR from an earlier failed run. On failure the
    pending batches are marked ERROR with the message and the exception is
    re-raised; the previously published tree is left as it was.
    """

    s = settings or Settings.load_from_yaml()
    if session_factory is None:
        session_factory = create_session_factory(create_db_engine(s.database))
    encoder = ExportArtifactEncoder(signer=signer or _default_signer(s))
    root = Path(output_root or s.assembly.output_root).absolute()
    partitioner = partitioner or TimePartitioner(reference_hour=s.assembly.reference_hour)

    with get_db_context(session_factory) as db:
        batch_rows = list_batches(db)
        pending_ids = [row.id for row in batch_rows if ExportBatchStatus(row.status) in PENDING_STATUSES]
        exports = [load_export(db, row) for row in batch_rows]

    key_count = len({k for e in exports for k in e.keys})

    with log_context(run="assemble", pending_batches=pending_ids, output_root=str(root)):
        logger.info(
            "Assembling %d batches (%d pending, %d keys) into %s", len(batch_rows), len(pending_ids), key_count, root
        )
        root.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{root.name}.", dir=root.parent))
        try:
            tree = build_version_directory(
                s.assembly.api_version,
                [
                    build_diagnosis_keys_directory(
                        exports,
                        encoder,
                        countries=s.assembly.supported_countries,
                        partitioner=partitioner,
                    )
                ],
            )
            tree.prepare(PathContext.root(staging))
            write_res = TreeWriter(max_workers=s.assembly.max_workers).write(tree)
            _swap_into_place(staging, root)
        except Exception as e:
            logger.exception("Assembly failed")
            shutil.rmtree(staging, ignore_errors=True)
            with get_db_context(session_factory) as db:
                for batch_id in pending_ids:
                    close_export_batch(db, batch_id=batch_id, status=ExportBatchStatus.ERROR, error=str(e))
            raise

        with get_db_context(session_factory) as db:
            for batch_id in pending_ids:
                close_export_batch(db, batch_id=batch_id, status=ExportBatchStatus.CLOSED)
        logger.info("Published %d files, closed %d batches", write_res.files_written, len(pending_ids))

    return AssembleResult(
        batches=len(pending_ids),
        keys=key_count,
        files_written=write_res.files_written,
        output_root=root,
    )
