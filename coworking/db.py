import os
from datetime import timezone
from sqlalchemy import DateTime, create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator


Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """Aware UTC datetimes, also on databases that store them naive (sqlite)."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


def create_database_engine(url: str, credential: str = None) -> Engine:
    """Build an engine for the hosted database, applying the credential as password."""
    db_url = make_url(url)
    if credential and db_url.get_backend_name() != "sqlite":
        db_url = db_url.set(password=credential)
    kwargs = {}
    if db_url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if db_url.database in (None, "", ":memory:"):
            # one shared connection, or every threadpool worker gets its own empty database
            kwargs["poolclass"] = StaticPool
    return create_engine(db_url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)


def init_database(engine: Engine):
    # register tables on Base.metadata
    from coworking.models import booking, expense  # noqa: F401

    database = engine.url.database
    if engine.url.get_backend_name() == "sqlite" and database and database != ":memory:":
        directory = os.path.dirname(os.path.abspath(database))
        if not os.path.exists(directory):
            os.makedirs(directory)
    Base.metadata.create_all(bind=engine)
