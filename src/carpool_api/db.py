import logging
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from carpool_api.settings import DATABASE_URL

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    """
    Engine options for the configured backend.

    SQLite (local runs, tests) needs check_same_thread disabled because FastAPI
    runs sync endpoints in a threadpool.
    """
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


# Engine configured for typical web usage.
engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


# PUBLIC_INTERFACE
def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a SQLAlchemy session and ensures closure."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables known to the ORM metadata (dev/test convenience)."""
    # Import models so they register on Base.metadata.
    from carpool_api.models import ride, user, vehicle  # noqa: F401
    from carpool_api.models.base import Base

    logger.info("Creating database tables")
    Base.metadata.create_all(bind=engine)
