"""Database connection management."""

from typing import Optional
from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

DEFAULT_DATABASE_URL = "sqlite:///./weatherflow.db"

# Base class for all database models
Base = declarative_base()


def create_database_engine(database_url: str = DEFAULT_DATABASE_URL,
                           echo: bool = False,
                           connect_args: Optional[dict] = None) -> Engine:
    """Create a new engine; SQLite engines share one connection through StaticPool."""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args=connect_args if connect_args is not None else {"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo
        )
    return create_engine(
        database_url,
        echo=echo,
        connect_args=connect_args or {}
    )


def create_tables(engine: Engine):
    """Create all database tables."""
    from . import models  # noqa: F401  registers the mappings on Base
    Base.metadata.create_all(bind=engine)


def drop_tables(engine: Engine):
    """Drop all database tables."""
    from . import models  # noqa: F401
    Base.metadata.drop_all(bind=engine)
