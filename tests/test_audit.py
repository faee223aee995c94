"""
Tests for the medical record audit trail and the legacy access log.
"""

import logging

import pytest
from sqlalchemy.exc import OperationalError

from recordguard.extensions import db
from recordguard.models.system_models import MedicalRecordAccessLog, MedicalRecordAuditLog
from recordguard.security.audit import AuditLogger, AuditOutcome, RecordAction

audit = AuditLogger()


@pytest.mark.parametrize('outcome', list(AuditOutcome))
def test_every_outcome_is_recorded(app, context, outcome):
    assert audit.record(11, 901, RecordAction.VIEW, outcome, context, {'reason': 'test'})

    entry = MedicalRecordAuditLog.query.one()
    assert entry.employee_id == 11
    assert entry.patient_id == 901
    assert entry.action == 'view'
    assert entry.outcome == outcome.value
    assert entry.ip_address == '203.0.113.10'
    assert entry.user_agent == 'pytest'
    assert entry.session_id == 'session-1'
    assert entry.role == 'physician'
    assert entry.event_metadata == {'reason': 'test'}
    assert entry.created_at is not None


def test_view_is_not_projected_to_access_log(app, context):
    audit.record(11, 901, RecordAction.VIEW, AuditOutcome.COMPLETED, context)
    assert MedicalRecordAccessLog.query.count() == 0


def test_generate_is_projected_to_access_log(app, context):
    metadata = {'sections': ['basic', 'prescriptions'], 'output_format': 'pdf'}
    audit.record(11, 901, RecordAction.GENERATE, AuditOutcome.COMPLETED, context, metadata)

    row = MedicalRecordAccessLog.query.one()
    assert row.patient_id == 901
    assert row.employee_id == 11
    assert row.access_type == 'generate'
    assert row.sections_accessed == ['basic', 'prescriptions']
    assert row.output_format == 'pdf'


def test_access_log_defaults_to_html(app, context):
    audit.record(11, 901, 'preview', 'completed', context)

    row = MedicalRecordAccessLog.query.one()
    assert row.access_type == 'preview'
    assert row.sections_accessed == []
    assert row.output_format == 'html'


def test_refused_download_still_reaches_access_log(app, context):
    audit.record(11, 901, RecordAction.DOWNLOAD, AuditOutcome.DENIED, context)

    assert MedicalRecordAuditLog.query.one().outcome == 'denied'
    assert MedicalRecordAccessLog.query.one().access_type == 'download'


def test_entries_accumulate(app, context):
    for outcome in (AuditOutcome.DENIED, AuditOutcome.THROTTLED, AuditOutcome.COMPLETED):
        audit.record(11, 901, RecordAction.GENERATE, outcome, context)

    outcomes = [e.outcome for e in MedicalRecordAuditLog.query.order_by(MedicalRecordAuditLog.id)]
    assert outcomes == ['denied', 'throttled', 'completed']
    assert MedicalRecordAccessLog.query.count() == 3


def test_entry_is_mirrored_to_audit_logger(app, context, caplog):
    caplog.set_level(logging.INFO, logger='HIPAA_AUDIT')
    audit.record(11, 901, RecordAction.PRINT, AuditOutcome.DENIED, context)

    messages = [r.getMessage() for r in caplog.records if r.name == 'HIPAA_AUDIT']
    assert any("Action='print'" in m and "Outcome='denied'" in m for m in messages)


def test_unknown_action_is_rejected(app, context):
    with pytest.raises(ValueError):
        audit.record(11, 901, 'delete', AuditOutcome.COMPLETED, context)


def test_write_failure_is_reported_not_raised(monkeypatch, caplog, app, context):
    def broken_commit():
        raise OperationalError('INSERT INTO medical_record_audit_log', {}, Exception('disk full'))

    monkeypatch.setattr(db.session, 'commit', broken_commit)
    caplog.set_level(logging.ERROR, logger='SECURITY_OPS')

    assert audit.record(11, 901, RecordAction.GENERATE, AuditOutcome.COMPLETED, context) is False
    assert any('AUDIT WRITE FAILED' in r.getMessage() for r in caplog.records)

    monkeypatch.undo()
    assert MedicalRecordAuditLog.query.count() == 0
    assert MedicalRecordAccessLog.query.count() == 0


def test_out_of_range_patient_id_is_still_recorded(app, context):
    assert audit.record(11, '9' * 30, RecordAction.PREVIEW, AuditOutcome.DENIED, context, {'reason': 'patient_not_found'})

    entry = MedicalRecordAuditLog.query.one()
    assert entry.patient_id is None
    assert entry.event_metadata == {'reason': 'patient_not_found', 'requested_patient_id': '9' * 30}
    assert MedicalRecordAccessLog.query.one().patient_id is None
