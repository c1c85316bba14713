import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .utils import resolve_sqlite_url

load_dotenv()
# Repo root; relative sqlite paths in DB_URL resolve against it.
ROOT_DIR = Path(__file__).resolve().parents[2]
FALLBACK_DB_URL = "sqlite:///./couponlot.db"


def configured_url() -> str:
    """Database URL from ``DB_URL``, with relative SQLite paths made absolute."""
    return resolve_sqlite_url(os.getenv("DB_URL", FALLBACK_DB_URL), ROOT_DIR)


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    # Coupons, QC rows and logs rely on ON DELETE CASCADE from batches.
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def make_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    url = database_url or configured_url()
    engine = create_engine(url, echo=echo, future=True)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_foreign_keys(engine)
    return engine


def get_sessionmaker(engine: Engine) -> sessionmaker:
    # Workflows return ORM rows that callers read after commit.
    return sessionmaker(bind=engine, expire_on_commit=False, future=True)
