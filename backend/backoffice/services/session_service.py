# Overview: Service-layer operations for staff sessions; resolves a presented token into a request context.

"""
Staff Session Service

Issuing sessions belongs to the login flow; this module stores them and
resolves a presented token into a SessionContext for one request. The
caller hands the token in explicitly (decorators.require_auth reads it off
the current request), so no process-wide state carries request data.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- Absolute expiry (SESSION_TTL_HOURS)
- Revocable
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, Staff
from backoffice.time_utils import utcnow


@dataclass
class SessionContext:
    """Who is calling, resolved once per request."""
    staff: Staff
    session: SessionToken

    @property
    def staff_id(self) -> int:
        return self.staff.id

    @property
    def permissions_level(self) -> int:
        return self.staff.permissions_level


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy)."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(staff_id: int, ttl: timedelta | None = None) -> tuple[SessionToken, str]:
    """
    Create a session for a staff member.

    Returns (session_record, plaintext_token); only the hash is stored.
    Raises ValueError if the staff member is unknown or inactive.
    """
    staff = db.session.get(Staff, staff_id)
    if not staff or not staff.is_active:
        raise ValueError("Staff member not found or inactive")

    if ttl is None:
        ttl = timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", 12))

    plaintext_token = generate_token()
    now = utcnow()
    session = SessionToken(
        staff_id=staff_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + ttl,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, plaintext_token


def validate_session(token: str | None) -> SessionContext | None:
    """
    Resolve a token into a SessionContext.

    Returns None if the token is missing, unknown, revoked or expired, or if
    the staff member has been deactivated.
    """
    if not token:
        return None

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return None

    if session.expires_at < utcnow():
        return None

    staff = session.staff
    if not staff or not staff.is_active:
        return None

    return SessionContext(staff=staff, session=session)


def revoke_session(token: str, reason: str = "Logout") -> bool:
    """Returns True if a live session was revoked."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()
    return True


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """
    Delete sessions that expired or were revoked more than retention_days ago.

    Returns count of sessions deleted.
    """
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < cutoff,
            db.and_(SessionToken.is_revoked == True, SessionToken.revoked_at < cutoff),  # noqa: E712
        )
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
