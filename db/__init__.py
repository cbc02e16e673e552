"""
Database module for the auth service.

Provides the SQLAlchemy engine and the refresh-token session model.
"""

from db.engine import Base, SessionLocal, get_engine, init_db

__all__ = ["Base", "SessionLocal", "get_engine", "init_db"]
