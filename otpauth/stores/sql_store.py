"""SQL refresh-session store using SQLAlchemy."""

from __future__ import annotations

from datetime import timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from db.models.auth import AuthSession


class SqlSessionStore:
    """Auth session store backed by a SQL database."""

    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        if session_factory is None:
            from db.engine import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory

    def _get_session(self) -> Session:
        return self._session_factory()

    async def create_session(self, subject: str, refresh_jti: str, expires_at: int) -> None:
        with self._get_session() as db:
            # Delete existing session with same jti if exists
            existing = db.get(AuthSession, refresh_jti)
            if existing:
                db.delete(existing)
                db.flush()

            db.add(
                AuthSession(
                    refresh_jti=refresh_jti,
                    subject=subject,
                    expires_at=expires_at,
                    revoked=False,
                    used=False,
                )
            )
            db.commit()

    async def get_session(self, refresh_jti: str) -> dict | None:
        with self._get_session() as db:
            session = db.execute(
                select(AuthSession).where(AuthSession.refresh_jti == refresh_jti)
            ).scalar_one_or_none()
            if not session:
                return None
            created_at = session.created_at
            if created_at is not None and created_at.tzinfo is None:
                # sqlite drops the offset
                created_at = created_at.replace(tzinfo=timezone.utc)
            return {
                "refresh_jti": session.refresh_jti,
                "subject": session.subject,
                "expires_at": session.expires_at,
                "revoked": session.revoked,
                "used": session.used,
                "created_at": int(created_at.timestamp()) if created_at else None,
            }

    async def revoke_session(self, refresh_jti: str) -> None:
        with self._get_session() as db:
            db.execute(
                update(AuthSession)
                .where(AuthSession.refresh_jti == refresh_jti)
                .values(revoked=True)
            )
            db.commit()

    async def mark_used(self, refresh_jti: str) -> bool:
        """Conditional update so only one exchange of a token can win."""
        with self._get_session() as db:
            result = db.execute(
                update(AuthSession)
                .where(AuthSession.refresh_jti == refresh_jti, AuthSession.used.is_(False))
                .values(used=True)
            )
            db.commit()
            return result.rowcount == 1
