#!/usr/bin/env python3
"""Assemble open export batches into the static distribution tree.

Example:
  SIGNING_SECRET=... PYTHONPATH="$(pwd)" python scripts/assemble_distribution.py --output ./out --workers 8
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from distribution.config import Settings
from distribution.logging_config import get_logger, setup_logging
from distribution.persistence.db import create_db_engine, create_session_factory, init_db
from distribution.pipelines.assemble import assemble_open_batches

logger = get_logger(__name__)


def main(argv=None) -> int:
    p = argparse.ArgumentParser()
    p.add_argument("--config", type=Path, default=None, help="YAML config (default: config/distribution.yaml)")
    p.add_argument("--output", type=Path, default=None, help="Output directory (overrides DIST_OUTPUT_ROOT)")
    p.add_argument("--workers", type=int, default=None, help="File writer threads (<=1 writes sequentially)")
    p.add_argument("--reference-hour", type=int, default=None, help="Completeness cut-off, hours since epoch")
    p.add_argument("--init-db", action="store_true", help="Create bookkeeping tables before assembling")
    args = p.parse_args(argv)

    settings = Settings.load_from_yaml(args.config)
    setup_logging(settings.app.log_level, use_json=settings.app.log_json, log_file=settings.app.log_file)

    if args.workers is not None:
        settings.assembly.max_workers = args.workers
    if args.reference_hour is not None:
        settings.assembly.reference_hour = args.reference_hour

    engine = create_db_engine(settings.database)
    if args.init_db:
        init_db(engine)
        logger.info("Initialized bookkeeping tables at %s", settings.database.url)

    res = assemble_open_batches(
        settings,
        output_root=args.output,
        session_factory=create_session_factory(engine),
    )
    print(f"Published {res.batches} batches ({res.keys} keys): {res.files_written} files under {res.output_root}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
