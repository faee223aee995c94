# /recordguard/security/rate_limit.py
from datetime import datetime, timedelta
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from recordguard.extensions import db
from recordguard.models.system_models import MedicalRecordAuditLog
from recordguard.security.audit import AuditOutcome
from recordguard.security.results import Decision

HOURLY_WINDOW = timedelta(hours=1)
DAILY_WINDOW = timedelta(days=1)


class RecordRateLimiter:
    """Per-employee caps on sensitive record actions.

    Counts the employee's completed actions of a kind in the audit trail over
    the trailing hour and day. Checking does not record anything; the audit
    entry written after the action completes is what gets counted next time.
    If the audit trail cannot be counted the limiter lets the request through
    and reports the failure on the operational logger.
    """

    def __init__(self, hourly_limit=10, daily_limit=50):
        self.hourly_limit = hourly_limit
        self.daily_limit = daily_limit

    def check(self, requester_id, action, now=None) -> Decision:
        now = now or datetime.utcnow()
        action = getattr(action, 'value', action)
        try:
            hourly = MedicalRecordAuditLog.count_actions(
                requester_id, action, AuditOutcome.COMPLETED.value, now - HOURLY_WINDOW
            )
            if hourly >= self.hourly_limit:
                return Decision.throttled('hourly_limit_reached')

            daily = MedicalRecordAuditLog.count_actions(
                requester_id, action, AuditOutcome.COMPLETED.value, now - DAILY_WINDOW
            )
            if daily >= self.daily_limit:
                return Decision.throttled('daily_limit_reached')
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.security_logger.error(
                f"Rate limit check unavailable, allowing request: employee={requester_id} action={action} error={e}"
            )
            return Decision.failure('rate_limit_unavailable', permitted=True)

        return Decision.allow()
