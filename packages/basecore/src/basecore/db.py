import functools

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from basecore.settings import get_settings

BACKOFFICE = "backoffice"
APPCHAT = "appchat"


def _database_url(database: str) -> str:
    settings = get_settings()
    if database == APPCHAT:
        return settings.appchat_database_url
    if database == BACKOFFICE:
        return settings.DATABASE_URL
    raise ValueError(f"Unknown database: {database}")


@functools.lru_cache()
def get_engine(database: str = BACKOFFICE) -> Engine:
    """
    Get SQLAlchemy engine for a database (cached).

    This function lazily initializes the engine to avoid import-time side effects.
    PostgreSQL connections carry a statement_timeout so a stuck query cannot
    stall a reconciliation cycle indefinitely.
    """
    settings = get_settings()
    url = _database_url(database)

    connect_args = {}
    if url.startswith("postgresql") and settings.DB_STATEMENT_TIMEOUT_MS > 0:
        connect_args["options"] = f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"

    return create_engine(url, pool_pre_ping=True, echo=False, connect_args=connect_args)


@functools.lru_cache()
def get_sessionmaker(database: str = BACKOFFICE) -> sessionmaker:
    """
    Get SQLAlchemy sessionmaker (cached).

    This function lazily initializes the sessionmaker to avoid import-time side effects.
    """
    engine = get_engine(database)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Dependency generator for FastAPI to get a backoffice database session.

    Yields a database session and ensures it's closed after use.
    """
    SessionLocal = get_sessionmaker(BACKOFFICE)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_appchat_db():
    """Dependency generator for the app-chat database (accounts, chats, tags)."""
    SessionLocal = get_sessionmaker(APPCHAT)
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
