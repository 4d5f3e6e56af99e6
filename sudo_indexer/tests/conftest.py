import pathlib
import pytest
from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

# Automatically load .env from project root
load_dotenv(dotenv_path=pathlib.Path(__file__).parent.parent.parent / ".env")

from sudo_indexer.indexer.projector import StateProjector
from sudo_indexer.indexer.tracker import PairAddressTracker
from sudo_indexer.storage.db_utils import init_db
from event_builders import FACTORY


@pytest.fixture
def engine():
    # in-memory SQLite; pysqlite needs its own BEGIN handling for SAVEPOINTs
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def tracker():
    return PairAddressTracker(FACTORY)


@pytest.fixture
def projector(session, tracker):
    return StateProjector(session, tracker)
