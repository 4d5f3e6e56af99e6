from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session
from sudo_indexer.config.settings import DATABASE_URL

# the projector keeps one long-lived session and commits once per block,
# so a small pool is enough
engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=5,
)
SessionLocal = scoped_session(
    sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
