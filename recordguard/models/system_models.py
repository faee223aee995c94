# /recordguard/models/system_models.py
import hashlib
from datetime import datetime
from sqlalchemy import select, delete, func
from recordguard.extensions import db


class MedicalRecordAuditLog(db.Model):
    """Append-only audit trail of medical record access decisions and actions.

    Rows are only ever inserted; nothing in the application updates or
    deletes them. Retention and archival are handled outside this service.
    """
    __tablename__ = 'medical_record_audit_log'

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, index=True)
    patient_id = db.Column(db.Integer, index=True)
    action = db.Column(db.String(30), nullable=False)
    outcome = db.Column(db.String(20), nullable=False)
    ip_address = db.Column(db.String(45))
    user_agent = db.Column(db.String(255))
    session_id = db.Column(db.String(64))
    role = db.Column(db.String(50))
    event_metadata = db.Column('metadata', db.JSON, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        db.Index('ix_audit_employee_action_created', 'employee_id', 'action', 'created_at'),
    )

    @classmethod
    def count_actions(cls, employee_id: int, action: str, outcome: str, since: datetime) -> int:
        """Number of entries of the given action and outcome recorded since `since`."""
        stmt = select(func.count(cls.id)).where(
            cls.employee_id == employee_id,
            cls.action == action,
            cls.outcome == outcome,
            cls.created_at >= since
        )
        return db.session.execute(stmt).scalar_one()

    def to_dict(self):
        return {
            'id': self.id,
            'employee_id': self.employee_id,
            'patient_id': self.patient_id,
            'action': self.action,
            'outcome': self.outcome,
            'ip_address': self.ip_address,
            'user_agent': self.user_agent,
            'session_id': self.session_id,
            'role': self.role,
            'metadata': self.event_metadata or {},
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class MedicalRecordAccessLog(db.Model):
    """Legacy access log kept for reports that predate the audit trail."""
    __tablename__ = 'medical_record_access_logs'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, index=True)
    employee_id = db.Column(db.Integer, index=True)
    access_type = db.Column(db.String(20), nullable=False)  # 'preview', 'generate', 'download'
    sections_accessed = db.Column(db.JSON, default=list)
    output_format = db.Column(db.String(10), default='html')
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'patient_id': self.patient_id,
            'employee_id': self.employee_id,
            'access_type': self.access_type,
            'sections_accessed': self.sections_accessed or [],
            'output_format': self.output_format,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class CsrfToken(db.Model):
    """One-time CSRF tokens keyed by a hash of the token value."""
    __tablename__ = 'csrf_tokens'

    id = db.Column(db.Integer, primary_key=True)
    token_hash = db.Column(db.String(64), unique=True, nullable=False, index=True)
    session_id = db.Column(db.String(64), nullable=False, index=True)
    issued_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @staticmethod
    def hash_token(token: str) -> str:
        return hashlib.sha256(token.encode('utf-8')).hexdigest()

    @classmethod
    def take(cls, session_id: str, token: str) -> datetime | None:
        """Atomically fetch and delete a token, returning its issue time.

        Only the caller whose DELETE removes the row gets the timestamp back,
        so two concurrent validations of one token cannot both succeed.
        """
        token_hash = cls.hash_token(token)
        row = db.session.execute(
            select(cls.id, cls.issued_at).where(
                cls.token_hash == token_hash,
                cls.session_id == session_id
            )
        ).first()
        if row is None:
            return None
        deleted = db.session.execute(delete(cls).where(cls.id == row.id)).rowcount
        db.session.commit()
        return row.issued_at if deleted == 1 else None

    @classmethod
    def sweep_expired(cls, cutoff: datetime) -> int:
        """Delete tokens issued before `cutoff`. Caller commits."""
        return db.session.execute(delete(cls).where(cls.issued_at < cutoff)).rowcount

    @classmethod
    def purge_session(cls, session_id: str) -> int:
        """Delete every token bound to a session. Caller commits."""
        return db.session.execute(delete(cls).where(cls.session_id == session_id)).rowcount


class RevokedToken(db.Model):
    """Track revoked JWT tokens"""
    __tablename__ = 'revoked_tokens'

    id = db.Column(db.Integer, primary_key=True)
    jti = db.Column(db.String(120), unique=True, nullable=False, index=True)
    revoked_at = db.Column(db.DateTime, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime)
