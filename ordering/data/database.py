# ordering/data/database.py
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from ordering.domain.errors import StoreUnavailable
from ordering.utils.settings import DATABASE_URL
from ordering.utils.logging import get_logger

logger = get_logger(__name__)

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def store_guard(db: Session, operation: str):
    """
    Rolls back and raises StoreUnavailable when the database connection fails.
    Nothing written inside the block survives a failure.
    """
    try:
        yield db
    except OperationalError as e:
        logger.error(f"Store unavailable during {operation}: {e}")
        db.rollback()
        raise StoreUnavailable(operation, str(e.orig or e)) from e


def init_db(bind=None):
    # models must be imported so Base.metadata knows every table
    import ordering.data.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info(f"Tables ready: {sorted(Base.metadata.tables.keys())}")
