# storefront/data/database.py
from functools import wraps

from sqlalchemy import create_engine
from sqlalchemy.exc import InterfaceError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import declarative_base, sessionmaker

from storefront.domain.errors import StoreUnavailableError
from storefront.utils.settings import DATABASE_URL, DB_CONNECT_TIMEOUT, DB_POOL_TIMEOUT
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()


def build_engine(url: str = DATABASE_URL, **kwargs):
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        # bounded waits so a dead database fails fast
        kwargs.setdefault("connect_args", {"connect_timeout": DB_CONNECT_TIMEOUT})
        kwargs.setdefault("pool_timeout", DB_POOL_TIMEOUT)
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, **kwargs)


engine = build_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


STORE_DOWN_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


def store_call(fn):
    """Turn connection-level database failures into StoreUnavailableError."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except STORE_DOWN_ERRORS as e:
            logger.error(f"Cart store unavailable in {fn.__qualname__}: {e}")
            raise StoreUnavailableError() from e

    return wrapper
