from flask import request, jsonify
from recordguard.models.system_models import MedicalRecordAccessLog, MedicalRecordAuditLog
from recordguard.security import AuditOutcome, RecordAction, record_security
from recordguard.security.access import parse_record_id
from recordguard.security.client_context import ClientContext

DEFAULT_LIMIT = 100
MAX_LIMIT = 500


def _report_filters():
    """Returns (filters, error_response)."""
    filters = {}
    for name in ('patient_id', 'employee_id'):
        raw = request.args.get(name)
        filters[name] = parse_record_id(raw) if raw is not None else None
        if raw is not None and filters[name] is None:
            return None, (jsonify({'error': f'Invalid {name}'}), 400)
    limit = request.args.get('limit', DEFAULT_LIMIT, type=int)
    filters['limit'] = max(1, min(limit, MAX_LIMIT))
    return filters, None


def _record_review(requester, report, filters):
    """Audit reviews are themselves recorded in the audit trail."""
    context = ClientContext.from_request(request, requester)
    record_security.record(
        requester.id, filters['patient_id'], RecordAction.AUDIT_REVIEW, AuditOutcome.COMPLETED,
        context, {'report': report, 'filters': filters}
    )


def get_audit_log(requester):
    """Lists medical record audit entries, newest first."""
    filters, error = _report_filters()
    if error:
        return error
    query = MedicalRecordAuditLog.query
    if filters['patient_id'] is not None:
        query = query.filter_by(patient_id=filters['patient_id'])
    if filters['employee_id'] is not None:
        query = query.filter_by(employee_id=filters['employee_id'])
    action = request.args.get('action')
    if action:
        query = query.filter_by(action=action)

    entries = query.order_by(MedicalRecordAuditLog.created_at.desc(), MedicalRecordAuditLog.id.desc()) \
        .limit(filters['limit']).all()
    _record_review(requester, 'audit_log', filters)
    return jsonify({'entries': [e.to_dict() for e in entries], 'count': len(entries)}), 200


def get_access_log(requester):
    """Lists legacy access-log entries (preview/generate/download), newest first."""
    filters, error = _report_filters()
    if error:
        return error
    query = MedicalRecordAccessLog.query
    if filters['patient_id'] is not None:
        query = query.filter_by(patient_id=filters['patient_id'])
    if filters['employee_id'] is not None:
        query = query.filter_by(employee_id=filters['employee_id'])

    entries = query.order_by(MedicalRecordAccessLog.created_at.desc(), MedicalRecordAccessLog.id.desc()) \
        .limit(filters['limit']).all()
    _record_review(requester, 'access_log', filters)
    return jsonify({'entries': [e.to_dict() for e in entries], 'count': len(entries)}), 200
