# drive_auth/core/database.py
from contextlib import contextmanager
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    connect_args = {}
    kwargs = {}
    if database_url.startswith("sqlite"):
        # Request handlers run in the threadpool
        connect_args["check_same_thread"] = False
        if ":memory:" in database_url:
            kwargs["poolclass"] = StaticPool
    try:
        engine = create_engine(database_url, connect_args=connect_args, **kwargs)
    except Exception as e:
        logger.error(f"Failed to create database engine: {e}", exc_info=True)
        raise
    logger.info("Database engine created successfully.")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine) -> None:
    # Models must be imported so that Base.metadata knows about their tables
    from drive_auth.users import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


@contextmanager
def get_db_session(session_factory: sessionmaker):
    db: Session = session_factory()
    try:
        yield db
    finally:
        db.close()
