"""
SQLAlchemy engine and session factory for the auth session store.

Usage:
    from db.engine import SessionLocal

    with SessionLocal() as db:
        session = db.get(AuthSession, refresh_jti)
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import Config


def build_engine(database_url: str) -> Engine:
    """Create an engine, with sqlite-specific connect args where needed."""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before use
        pool_size=10,
        max_overflow=20,
        echo=False,
    )


engine = build_engine(Config.get_database_url())

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# Base class for all models
Base = declarative_base()


def get_engine() -> Engine:
    """Get the SQLAlchemy engine."""
    return engine


def init_db(bind: Engine | None = None) -> None:
    """Create auth tables if they do not exist."""
    # Register models on Base.metadata
    import db.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)

