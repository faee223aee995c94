# /recordguard/security/audit.py
import enum
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from recordguard.extensions import db
from recordguard.models.system_models import MedicalRecordAccessLog, MedicalRecordAuditLog
from recordguard.security.access import parse_record_id


class RecordAction(str, enum.Enum):
    VIEW = 'view'
    PREVIEW = 'preview'
    GENERATE = 'generate'
    DOWNLOAD = 'download'
    PRINT = 'print'
    EXPORT = 'export'
    AUDIT_REVIEW = 'audit_review'


class AuditOutcome(str, enum.Enum):
    DENIED = 'denied'
    THROTTLED = 'throttled'
    INVALID_TOKEN = 'invalid_token'
    COMPLETED = 'completed'
    FAILED = 'failed'


# Actions that are also written to the legacy access log
ACCESS_LOG_ACTIONS = frozenset({RecordAction.PREVIEW, RecordAction.GENERATE, RecordAction.DOWNLOAD})

DEFAULT_OUTPUT_FORMAT = 'html'


class AuditLogger:
    """Writes the medical record audit trail.

    Every call appends one audit entry regardless of outcome. A failed write
    is rolled back and reported on the operational logger; it never raises
    into the caller, whose action has usually already happened.
    """

    def record(self, requester_id, patient_id, action, outcome, context, metadata=None) -> bool:
        action = RecordAction(action)
        outcome = AuditOutcome(outcome)
        metadata = dict(metadata or {})
        stored_patient_id = parse_record_id(patient_id)
        if patient_id is not None and stored_patient_id is None:
            metadata['requested_patient_id'] = str(patient_id)[:64]

        try:
            db.session.add(MedicalRecordAuditLog(
                employee_id=requester_id,
                patient_id=stored_patient_id,
                action=action.value,
                outcome=outcome.value,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
                session_id=context.session_id,
                role=context.role or 'unknown',
                event_metadata=metadata
            ))
            if action in ACCESS_LOG_ACTIONS:
                db.session.add(MedicalRecordAccessLog(
                    patient_id=stored_patient_id,
                    employee_id=requester_id,
                    access_type=action.value,
                    sections_accessed=list(metadata.get('sections') or []),
                    output_format=metadata.get('output_format') or DEFAULT_OUTPUT_FORMAT
                ))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.security_logger.error(
                f"AUDIT WRITE FAILED: Action='{action.value}', Outcome='{outcome.value}', "
                f"EmployeeID='{requester_id}', PatientID='{patient_id}', Error='{e}'"
            )
            return False

        current_app.audit_logger.info(
            f"Action='{action.value}', Outcome='{outcome.value}', EmployeeID='{requester_id}', "
            f"PatientID='{patient_id}', Role='{context.role}', IP='{context.ip_address}'"
        )
        return True
