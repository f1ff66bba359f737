from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool


# Base class for models
class Base(DeclarativeBase):
    pass


def normalize_db_url(db_url: str) -> str:
    '''
    SQLAlchemy wants "postgresql://..." while most hosting providers hand out
    "postgres://..." urls.
    '''
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)
    return db_url


def make_engine(db_url: str) -> Engine:
    '''
    Creates the engine for the given url and makes sure all tables exist.

    An in-memory SQLite url gets a single shared connection (StaticPool), otherwise
    every pooled connection would see its own empty database.
    '''
    db_url = normalize_db_url(db_url)

    if db_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in db_url or db_url.endswith("sqlite://"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(db_url, **kwargs)
    else:
        engine = create_engine(db_url, pool_pre_ping=True)

    # Import models so they are registered on Base.metadata
    from cinerate.db.models import users, movies, reviews, sessions  # noqa: F401

    Base.metadata.create_all(bind=engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    # Objects stay readable after commit -> the store hands out detached snapshots
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
