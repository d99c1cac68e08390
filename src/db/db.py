import logging
from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from config import config
from db.models import Base

logger = logging.getLogger(__name__)


def init_db(echo: bool = False, *, db_file: str | Path | None = None, reset: bool = False) -> Session:
    """Open the SQLite store, creating its directory and tables on first use.

    ``db_file`` falls back to the configured ``AppSettings.db_file``.
    """
    path = Path(db_file) if db_file is not None else config().db_file
    if reset and path.exists():
        logger.info("Removing existing DB at %s", path)
        path.unlink()
    path.parent.mkdir(parents=True, exist_ok=True)

    logger.info("Opening DB at %s", path)
    engine: Engine = create_engine(f"sqlite:///{path}", echo=echo)
    Base.metadata.create_all(engine)
    return sessionmaker(engine)()
