"""
Auth models for refresh-token session management.

AuthSession: Refresh token tracking
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from db.engine import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthSession(Base):
    """
    Auth session for refresh token management.

    One row per issued refresh token, keyed by its jti. A row is marked used
    when the token is exchanged and revoked on logout or reuse.
    """
    __tablename__ = "auth_sessions"

    refresh_jti = Column(String(64), primary_key=True)
    subject = Column(String(255), nullable=False, index=True)
    expires_at = Column(Integer, nullable=False)  # Unix timestamp
    revoked = Column(Boolean, default=False, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<AuthSession(jti={self.refresh_jti[:8]}..., subject={self.subject})>"
