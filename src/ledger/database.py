"""Generate database session for the local account store"""

from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.core.config import get_settings
from src.ledger.schema import Base


def build_engine(database_url: str | None = None) -> Engine:
    engine = create_engine(database_url or get_settings().ledger_db_url)
    # Ensure all tables are created
    Base.metadata.create_all(bind=engine)
    return engine


def get_db(engine: Engine | None = None) -> Generator[Session, None, None]:
    session_local = sessionmaker(bind=engine or build_engine())
    db = session_local()
    try:
        yield db
    finally:
        db.close()
