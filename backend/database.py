# backend/database.py
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from config import settings

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# Hosted Postgres hands out postgres:// URLs, SQLAlchemy needs postgresql://
if SQLALCHEMY_DATABASE_URL and SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)

if "sqlite" in SQLALCHEMY_DATABASE_URL:
    connect_args = {"check_same_thread": False} # SQLite only
else:
    connect_args = {}

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args=connect_args
)


def _sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def configure_sqlite(sqlite_engine) -> None:
    # SQLite enforces foreign keys (and their ON DELETE rules) only when asked, per connection
    event.listen(sqlite_engine, "connect", _sqlite_foreign_keys)


if engine.dialect.name == "sqlite":
    configure_sqlite(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

@contextmanager
def atomic(db: Session):
    """Run a read-check-write sequence as one unit: commit on success, roll back on any error.

    Row locks (``SELECT ... FOR UPDATE``) serialize concurrent writers on Postgres. SQLite
    ignores them, so there the block starts with ``BEGIN IMMEDIATE`` and holds the database
    write lock from the first read to the commit.
    """
    if db.get_bind().dialect.name == "sqlite":
        # End the read transaction left by lookups before taking the write lock
        db.commit()
        db.connection().exec_driver_sql("BEGIN IMMEDIATE")
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise

def init_db():
    # Register every table on Base.metadata before creating the schema
    import models  # noqa: F401
    Base.metadata.create_all(bind=engine)
