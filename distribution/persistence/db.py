"""Database engine/session helpers for export bookkeeping."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from distribution.config import DatabaseConfig
from distribution.persistence.models import DistributionBase


def create_db_engine(config: Optional[DatabaseConfig] = None):
    cfg = config or DatabaseConfig()
    if cfg.url.startswith("sqlite"):
        return create_engine(
            cfg.url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=cfg.echo,
        )
    return create_engine(cfg.url, echo=cfg.echo)


def init_db(engine) -> None:
    DistributionBase.metadata.create_all(bind=engine)


def create_session_factory(engine):
    return sessionmaker(autoflush=False, bind=engine)


@contextmanager
def get_db_context(session_factory) -> Generator[Session, None, None]:
    """Session that commits on success and rolls back on error."""

    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
