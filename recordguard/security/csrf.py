# /recordguard/security/csrf.py
import secrets
from datetime import datetime, timedelta
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from recordguard.extensions import db
from recordguard.models.system_models import CsrfToken
from recordguard.security.results import Decision

CSRF_REFUSAL_REASONS = frozenset({'missing_token', 'unknown_token', 'expired_token', 'token_store_unavailable'})


class TokenStoreError(Exception):
    """Raised when a CSRF token cannot be issued because the store failed."""
    pass


class CsrfTokenManager:
    """One-time, time-boxed CSRF tokens bound to a login session.

    A token is consumed by its first validation, successful or not. Tokens
    older than the lifetime fail validation and are swept whenever a new
    token is issued.
    """

    def __init__(self, lifetime=timedelta(hours=1)):
        self.lifetime = lifetime

    def issue(self, session_id, now=None) -> str:
        if not session_id:
            raise ValueError("A session identifier is required to issue a CSRF token")
        now = now or datetime.utcnow()
        token = secrets.token_hex(32)
        try:
            CsrfToken.sweep_expired(now - self.lifetime)
            db.session.add(CsrfToken(
                token_hash=CsrfToken.hash_token(token),
                session_id=session_id,
                issued_at=now
            ))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.security_logger.error(f"CSRF token issue failed for session {session_id}: {e}")
            raise TokenStoreError("CSRF token store unavailable") from e
        return token

    def validate(self, session_id, token, now=None) -> Decision:
        if not session_id or not token or not isinstance(token, str):
            return Decision.deny('missing_token')
        now = now or datetime.utcnow()
        try:
            issued_at = CsrfToken.take(session_id, token)
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.security_logger.error(f"CSRF token validation failed for session {session_id}: {e}")
            return Decision.failure('token_store_unavailable')

        if issued_at is None:
            return Decision.deny('unknown_token')
        if now - issued_at > self.lifetime:
            return Decision.deny('expired_token')
        return Decision.allow()

    def purge_session(self, session_id) -> None:
        """Drop every outstanding token of a session (used on logout)."""
        try:
            CsrfToken.purge_session(session_id)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.security_logger.error(f"CSRF token purge failed for session {session_id}: {e}")
