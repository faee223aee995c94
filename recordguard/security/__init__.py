"""
Medical record security manager.

Runs the checks that guard a patient record request, in order:

    access decision -> capability -> rate limit -> CSRF token

and writes the audit trail. A refused request is audited by `authorize()`
itself; a permitted one is audited by `complete()` (or `fail()`) once the
caller's action has run, so every request leaves exactly one audit entry.
"""
from datetime import timedelta
from recordguard.security.access import AccessDecisionEngine
from recordguard.security.audit import AuditLogger, AuditOutcome, RecordAction
from recordguard.security.csrf import CsrfTokenManager, TokenStoreError
from recordguard.security.permissions import Capability, Role, has_permission
from recordguard.security.rate_limit import RecordRateLimiter
from recordguard.security.results import Decision, Outcome


class MedicalRecordSecurity:

    def __init__(self, app=None):
        self.access = AccessDecisionEngine()
        self.rate_limiter = RecordRateLimiter()
        self.csrf = CsrfTokenManager()
        self.audit = AuditLogger()
        if app:
            self.init_app(app)

    def init_app(self, app):
        """Load rate-limit caps and token lifetime from the app's config."""
        self.rate_limiter = RecordRateLimiter(
            hourly_limit=app.config.get('RECORD_GENERATE_HOURLY_LIMIT', 10),
            daily_limit=app.config.get('RECORD_GENERATE_DAILY_LIMIT', 50)
        )
        self.csrf = CsrfTokenManager(
            lifetime=app.config.get('CSRF_TOKEN_LIFETIME', timedelta(hours=1))
        )
        app.extensions['record_security'] = self

    # -- individual checks --

    def decide(self, requester, patient_id) -> Decision:
        return self.access.decide(requester, patient_id)

    def has_permission(self, role, capability) -> bool:
        return has_permission(role, capability)

    def check_rate_limit(self, requester_id, action, now=None) -> Decision:
        return self.rate_limiter.check(requester_id, action, now=now)

    def issue_csrf_token(self, session_id) -> str:
        return self.csrf.issue(session_id)

    def validate_csrf_token(self, session_id, token) -> Decision:
        return self.csrf.validate(session_id, token)

    def record(self, requester_id, patient_id, action, outcome, context, metadata=None) -> bool:
        return self.audit.record(requester_id, patient_id, action, outcome, context, metadata)

    # -- request pipeline --

    def authorize(self, requester, patient_id, action, capability, context,
                  csrf_token=None, csrf_required=True, rate_limited=False, metadata=None) -> Decision:
        """Run every check for one record request.

        Returns the first refusing decision (already audited), or an ALLOW
        decision after which the caller performs the action and calls
        `complete()` or `fail()`.
        """
        decision = self.access.decide(requester, patient_id)
        if decision.permitted and not has_permission(requester.role, capability):
            decision = Decision.deny('missing_capability')
        if not decision.permitted:
            self._record_refusal(requester, patient_id, action, AuditOutcome.DENIED, context, decision, metadata)
            return decision

        if rate_limited:
            limit = self.rate_limiter.check(requester.id, action)
            if not limit.permitted:
                self._record_refusal(requester, patient_id, action, AuditOutcome.THROTTLED, context, limit, metadata)
                return limit

        if csrf_required or csrf_token is not None:
            token_check = self.csrf.validate(context.session_id, csrf_token)
            if not token_check.permitted:
                self._record_refusal(requester, patient_id, action, AuditOutcome.INVALID_TOKEN, context, token_check, metadata)
                return token_check

        return Decision.allow()

    def complete(self, requester, patient_id, action, context, metadata=None) -> bool:
        return self.audit.record(requester.id, patient_id, action, AuditOutcome.COMPLETED, context, metadata)

    def fail(self, requester, patient_id, action, context, error, metadata=None) -> bool:
        details = dict(metadata or {})
        details['error'] = str(error)
        return self.audit.record(requester.id, patient_id, action, AuditOutcome.FAILED, context, details)

    def _record_refusal(self, requester, patient_id, action, outcome, context, decision, metadata):
        details = dict(metadata or {})
        details['reason'] = decision.reason
        details['decision'] = decision.outcome.value
        self.audit.record(requester.id if requester else None, patient_id, action, outcome, context, details)


# Shared instance, initialized by the application factory.
record_security = MedicalRecordSecurity()

__all__ = [
    'AccessDecisionEngine',
    'AuditLogger',
    'AuditOutcome',
    'Capability',
    'CsrfTokenManager',
    'Decision',
    'MedicalRecordSecurity',
    'Outcome',
    'RecordAction',
    'RecordRateLimiter',
    'Role',
    'TokenStoreError',
    'has_permission',
    'record_security',
]
