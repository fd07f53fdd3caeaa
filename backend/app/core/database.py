from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings

_is_sqlite = settings.APP_DATABASE_DSN.startswith("sqlite")


def configure_sqlite_transactions(target: Engine) -> None:
    """Make every SQLite transaction take the write lock when it begins.

    pysqlite defers BEGIN and then upgrades read locks to write locks
    mid-transaction, which fails with "database is locked" when two
    redemptions race. BEGIN IMMEDIATE makes the second writer wait on the
    busy timeout instead. SAVEPOINT also works correctly once pysqlite
    stops managing transactions itself.
    """

    @event.listens_for(target, "connect")
    def _disable_pysqlite_begin(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(target, "begin")
    def _begin_immediate(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


engine = create_engine(
    settings.APP_DATABASE_DSN,
    connect_args=({"check_same_thread": False, "timeout": 30} if _is_sqlite else {}),
    pool_pre_ping=not _is_sqlite,
)
if _is_sqlite:
    configure_sqlite_transactions(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create the coupon tables if they do not exist yet."""
    import app.models  # noqa: F401  registers every table on Base.metadata

    Base.metadata.create_all(bind=engine)
