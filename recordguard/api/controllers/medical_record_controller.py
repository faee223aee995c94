from datetime import datetime
from flask import request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from recordguard.extensions import db
from recordguard.models.clinical_models import BillingRecord, Consultation, LabOrder, Prescription
from recordguard.models.patient_models import Patient
from recordguard.security import Capability, Outcome, RecordAction, TokenStoreError, record_security
from recordguard.security.access import parse_record_id
from recordguard.security.client_context import ClientContext
from recordguard.security.csrf import CSRF_REFUSAL_REASONS
from recordguard.utils.encryption_util import encryptor

AVAILABLE_SECTIONS = ['basic', 'consultations', 'prescriptions', 'lab_orders', 'billing']
OUTPUT_FORMATS = ('html', 'pdf')


def _parse_patient_and_sections(data):
    """Returns (patient_id, sections, error_response)."""
    patient_id = parse_record_id(data.get('patient_id'))
    if patient_id is None:
        return None, None, (jsonify({'error': 'Valid patient_id is required'}), 400)

    sections = data.get('sections') or []
    if not isinstance(sections, list):
        sections = []
    for section in sections:
        if section not in AVAILABLE_SECTIONS:
            return None, None, (jsonify({
                'error': f'Invalid section: {section}',
                'available_sections': AVAILABLE_SECTIONS
            }), 400)

    # If no sections specified, include all
    return patient_id, sections or list(AVAILABLE_SECTIONS), None


def _refusal_response(decision):
    """Generic response for a refused request; the reason stays in the audit trail."""
    if decision.outcome is Outcome.THROTTLED:
        return jsonify({'error': 'Rate limit exceeded. Please try again later.'}), 429
    if decision.reason in CSRF_REFUSAL_REASONS:
        return jsonify({'error': 'Valid CSRF token is required'}), 403
    return jsonify({'error': 'Access not permitted'}), 403


def _timestamp(value):
    return value.isoformat() if value else None


def _build_record(patient_id, sections):
    patient = db.session.get(Patient, patient_id)
    record = {'patient_id': patient_id}

    if 'basic' in sections:
        basic = encryptor.decrypt_fields(patient, 'full_name', 'date_of_birth', 'sex')
        basic.update(catchment_area=patient.catchment_area, municipality=patient.municipality)
        record['basic'] = basic
    if 'consultations' in sections:
        record['consultations'] = [{
            'id': c.id,
            'doctor_id': c.doctor_id,
            **encryptor.decrypt_fields(c, 'chief_complaint', 'diagnosis'),
            'status': c.status,
            'consulted_at': _timestamp(c.consulted_at)
        } for c in Consultation.query.filter_by(patient_id=patient_id).order_by(Consultation.consulted_at.desc())]
    if 'prescriptions' in sections:
        record['prescriptions'] = [{
            'id': p.id,
            'medication': p.medication,
            'dosage': p.dosage,
            'status': p.status,
            'prescribed_at': _timestamp(p.prescribed_at)
        } for p in Prescription.query.filter_by(patient_id=patient_id).order_by(Prescription.prescribed_at.desc())]
    if 'lab_orders' in sections:
        record['lab_orders'] = [{
            'id': o.id,
            'test_type': o.test_type,
            'status': o.status,
            'ordered_at': _timestamp(o.ordered_at)
        } for o in LabOrder.query.filter_by(patient_id=patient_id).order_by(LabOrder.ordered_at.desc())]
    if 'billing' in sections:
        record['billing'] = [{
            'id': b.id,
            'total_amount': float(b.total_amount or 0),
            'payment_status': b.payment_status,
            'billed_at': _timestamp(b.billed_at)
        } for b in BillingRecord.query.filter_by(patient_id=patient_id).order_by(BillingRecord.billed_at.desc())]

    return record


def _load_record(requester, patient_id, action, context, sections, metadata):
    """Runs the protected action and writes the closing audit entry."""
    try:
        record = _build_record(patient_id, sections)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Medical record load failed for patient {patient_id}: {e}")
        record_security.fail(requester, patient_id, action, context, e, metadata)
        return None
    record_security.complete(requester, patient_id, action, context, metadata)
    return record


def issue_csrf_token(requester):
    """Issues a one-time CSRF token bound to the caller's login session."""
    if not requester.session_id:
        return jsonify({'error': 'Session identifier missing from token'}), 400
    try:
        token = record_security.issue_csrf_token(requester.session_id)
    except TokenStoreError:
        return jsonify({'error': 'Unable to issue CSRF token'}), 503
    lifetime = record_security.csrf.lifetime
    return jsonify({'csrf_token': token, 'expires_in': int(lifetime.total_seconds())}), 200


def preview_record(requester):
    """Previews selected sections of a patient's record as HTML data."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON input'}), 400

    patient_id, sections, error = _parse_patient_and_sections(data)
    if error:
        return error

    context = ClientContext.from_request(request, requester)
    metadata = {'sections': sections, 'output_format': 'html'}
    decision = record_security.authorize(
        requester, patient_id, RecordAction.PREVIEW, Capability.VIEW, context,
        csrf_token=data.get('csrf_token'), csrf_required=False, metadata=metadata
    )
    if not decision.permitted:
        return _refusal_response(decision)

    record = _load_record(requester, patient_id, RecordAction.PREVIEW, context, sections, metadata)
    if record is None:
        return jsonify({'error': 'Unable to load medical record'}), 500

    # Fresh token for the follow-up generate request
    try:
        csrf_token = record_security.issue_csrf_token(requester.session_id) if requester.session_id else None
    except TokenStoreError:
        csrf_token = None

    return jsonify({
        'success': True,
        'record': record,
        'sections': sections,
        'csrf_token': csrf_token
    }), 200


def generate_record(requester):
    """Generates a patient's record for printing (pdf) or on-screen (html) output."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON input'}), 400

    patient_id, sections, error = _parse_patient_and_sections(data)
    if error:
        return error

    output_format = data.get('output', 'html')
    if output_format not in OUTPUT_FORMATS:
        return jsonify({'error': 'output must be either "html" or "pdf"'}), 400

    capability = Capability.PRINT if output_format == 'pdf' else Capability.VIEW
    context = ClientContext.from_request(request, requester)
    metadata = {'sections': sections, 'output_format': output_format}
    decision = record_security.authorize(
        requester, patient_id, RecordAction.GENERATE, capability, context,
        csrf_token=data.get('csrf_token'), csrf_required=True, rate_limited=True, metadata=metadata
    )
    if not decision.permitted:
        return _refusal_response(decision)

    record = _load_record(requester, patient_id, RecordAction.GENERATE, context, sections, metadata)
    if record is None:
        return jsonify({'error': 'Unable to load medical record'}), 500

    return jsonify({
        'success': True,
        'record': record,
        'sections': sections,
        'output_format': output_format,
        'generated_at': datetime.utcnow().isoformat()
    }), 200
