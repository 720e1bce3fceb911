# /oracle_assistant/db/database.py

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .base import Base


def build_engine(database_url: str) -> Engine:
    """
    Creates the SQLAlchemy engine for the session store.
    The 'check_same_thread' argument is only needed for SQLite.
    """
    engine_args = {}
    if database_url.startswith("sqlite"):
        engine_args["connect_args"] = {"check_same_thread": False}
        # An in-memory database lives only as long as its single connection.
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            engine_args["poolclass"] = StaticPool
    return create_engine(database_url, **engine_args)


def build_session_factory(engine: Engine) -> sessionmaker:
    # expire_on_commit is off so rows returned by an insert stay readable
    # after the session that created them is closed.
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
