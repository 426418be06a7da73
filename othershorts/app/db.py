from contextlib import contextmanager
import logging
import os
import sqlite3
from typing import Iterator, Optional
from othershorts.app.config import settings
from othershorts.app.errors import StorageError
from othershorts.app.schema import SCHEMA_SQL

logger = logging.getLogger(__name__)

def _sqlite_path_from_url(database_url: str) -> str:
    # this should support:
    #   sqlite:///./data/app.db  -> ./data/app.db
    #   sqlite:////abs/path.db   -> /abs/path.db
    if not database_url.startswith("sqlite:"):
        raise ValueError("Only sqlite DATABASE_URL is supported")

    if database_url.startswith("sqlite:///./") or database_url.startswith("sqlite:///../"):
        return database_url.replace("sqlite:///", "", 1)

    if database_url.startswith("sqlite:////"):
        # absolute path
        return database_url.replace("sqlite:////", "/", 1)

    if database_url.startswith("sqlite:///"):
        # treat as absolute (/path...)
        return database_url.replace("sqlite://", "", 1)

    return database_url.replace("sqlite:", "", 1)

def get_db_path() -> str:
    return _sqlite_path_from_url(settings.database_url)

def connect(db_path: Optional[str] = None) -> sqlite3.Connection:
    path = db_path or get_db_path()
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn

def init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)
    conn.commit()

@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """
    Turn sqlite failures into a StorageError with a generic message.
    The real error only goes to the server log.
    """
    try:
        yield
    except sqlite3.Error as exc:
        logger.exception("storage failure during %s", operation)
        raise StorageError("Database operation failed.") from exc
