"""
SQLAlchemy models for the auth service.

All models inherit from db.engine.Base.
"""

from db.models.auth import AuthSession

__all__ = ["AuthSession"]
