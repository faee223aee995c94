"""
Tests for the per-employee record generation caps.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import OperationalError

from recordguard.extensions import db
from recordguard.models.system_models import MedicalRecordAuditLog
from recordguard.security.audit import RecordAction
from recordguard.security.rate_limit import RecordRateLimiter
from recordguard.security.results import Outcome

NOW = datetime(2026, 5, 4, 15, 0, 0)


def add_entries(employee_id, times, action='generate', outcome='completed'):
    for created_at in times:
        db.session.add(MedicalRecordAuditLog(
            employee_id=employee_id,
            patient_id=1,
            action=action,
            outcome=outcome,
            role='physician',
            event_metadata={},
            created_at=created_at
        ))
    db.session.commit()


def test_under_the_cap_is_allowed(app):
    add_entries(3, [NOW - timedelta(minutes=i) for i in range(9)])
    decision = RecordRateLimiter(hourly_limit=10).check(3, RecordAction.GENERATE, now=NOW)
    assert decision.outcome is Outcome.ALLOW


def test_eleventh_action_in_the_hour_is_throttled(app):
    first = NOW - timedelta(minutes=50)
    add_entries(3, [first + timedelta(minutes=i) for i in range(10)])

    decision = RecordRateLimiter(hourly_limit=10).check(3, RecordAction.GENERATE, now=NOW)
    assert decision.outcome is Outcome.THROTTLED
    assert not decision.permitted
    assert decision.reason == 'hourly_limit_reached'


def test_window_rolls_past_first_action(app):
    first = NOW
    add_entries(3, [first + timedelta(minutes=i) for i in range(10)])
    limiter = RecordRateLimiter(hourly_limit=10)

    assert limiter.check(3, 'generate', now=first + timedelta(minutes=30)).outcome is Outcome.THROTTLED
    assert limiter.check(3, 'generate', now=first + timedelta(hours=1, seconds=1)).outcome is Outcome.ALLOW


def test_daily_cap(app):
    start = NOW - timedelta(hours=23)
    add_entries(3, [start + timedelta(minutes=25 * i) for i in range(50)])

    decision = RecordRateLimiter(hourly_limit=10, daily_limit=50).check(3, 'generate', now=NOW)
    assert decision.outcome is Outcome.THROTTLED
    assert decision.reason == 'daily_limit_reached'


def test_only_completed_actions_count(app):
    add_entries(3, [NOW - timedelta(minutes=i) for i in range(10)], outcome='denied')
    add_entries(3, [NOW - timedelta(minutes=i) for i in range(10)], outcome='throttled')

    assert RecordRateLimiter(hourly_limit=10).check(3, 'generate', now=NOW).permitted


def test_counts_are_per_employee_and_action(app):
    add_entries(4, [NOW - timedelta(minutes=i) for i in range(10)])
    add_entries(3, [NOW - timedelta(minutes=i) for i in range(10)], action='preview')

    assert RecordRateLimiter(hourly_limit=10).check(3, 'generate', now=NOW).permitted


def test_counting_failure_fails_open(monkeypatch, caplog, app):
    def broken_count(*args, **kwargs):
        raise OperationalError('SELECT count(*)', {}, Exception('connection reset'))

    monkeypatch.setattr(MedicalRecordAuditLog, 'count_actions', broken_count)
    caplog.set_level(logging.ERROR, logger='SECURITY_OPS')

    decision = RecordRateLimiter().check(3, 'generate', now=NOW)
    assert decision.outcome is Outcome.FAILURE
    assert decision.permitted
    assert decision.reason == 'rate_limit_unavailable'
    assert any('Rate limit check unavailable' in r.getMessage() for r in caplog.records)
