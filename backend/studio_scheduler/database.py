from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from .config import settings

_url = settings.resolved_database_url
_connect_args = {"check_same_thread": False} if _url.startswith("sqlite") else {}

# check_same_thread=False is required for SQLite under FastAPI's threadpool
engine = create_engine(_url, connect_args=_connect_args)


def enable_sqlite_fk(dbapi_connection, _):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


if _url.startswith("sqlite"):
    event.listen(engine, "connect", enable_sqlite_fk)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


def init_db(bind=None) -> None:
    """Create all tables that do not exist yet."""
    from .models import Base
    Base.metadata.create_all(bind=bind or engine)


# FastAPI dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
