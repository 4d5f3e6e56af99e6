from sqlalchemy import func, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session
from sudo_indexer.storage.base import Base
import logging
log = logging.getLogger(__name__)


def register_models():
    # importing the modules registers the tables on Base.metadata
    from sudo_indexer.storage.models import (  # noqa: F401
        pools,
        swaps,
        pool_nfts,
        pool_updates,
        protocol_settings,
        processed_events,
    )
    return Base.metadata


def init_db(engine):
    """Create every projection table that does not exist yet."""
    metadata = register_models()
    metadata.create_all(engine)
    log.info(f"Ensured tables: {', '.join(sorted(metadata.tables))}")


def conflict_insert(session: Session, table):
    """Return a dialect insert() supporting ``on_conflict_do_*``.

    Production runs on PostgreSQL; the test-suite binds the same models to
    SQLite, whose dialect exposes the same upsert API.
    """
    if session.get_bind().dialect.name == "sqlite":
        return sqlite_insert(table)
    return pg_insert(table)


def check_connection(session: Session) -> bool:
    session.execute(text("SELECT 1"))
    return True


def latest_processed_block(session: Session) -> int | None:
    from sudo_indexer.storage.models.processed_events import ProcessedEvent
    return session.execute(select(func.max(ProcessedEvent.block_number))).scalar()
