from contextlib import contextmanager
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


def build_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Ensure sqlite file parent directory exists to avoid 'unable to open database file'
        if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
            db_path = database_url.split("sqlite:///")[-1]
            Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
        # writers queue on the database lock instead of failing fast
        connect_args = {"check_same_thread": False, "timeout": 30}

    engine = create_engine(database_url, future=True, pool_pre_ping=True, connect_args=connect_args)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_session_factory(engine: Engine):
    """Return a ``get_session`` context manager bound to ``engine``.

    Every ``with get_session() as session`` block is one transaction: it
    commits on clean exit and rolls back on any exception.
    """
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)

    @contextmanager
    def get_session():
        session = SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return get_session


def init_db(engine: Engine) -> None:
    from ..models import Base

    Base.metadata.create_all(engine)
