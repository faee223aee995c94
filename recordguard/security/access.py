# /recordguard/security/access.py
"""
Patient record access decisions.

A requester may access a patient's record only if the requester is active
and the patient exists and is active. After that the requester's role picks
one rule family:

* organization-wide roles are always allowed;
* community health workers need an active assignment to the patient's
  catchment area;
* pharmacists, cashiers and laboratory technicians need at least one
  consultation, prescription, lab order or billing record linking them to
  the patient.

Every other role is denied. Decisions are computed from the database on each
call and never cached. If the data behind a rule cannot be read the
decision is a non-permitted FAILURE.
"""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from recordguard.extensions import db
from recordguard.models.clinical_models import interaction_exists
from recordguard.models.patient_models import CatchmentAssignment, Patient
from recordguard.security.permissions import Role
from recordguard.security.results import Decision

ORGANIZATION_WIDE_ROLES = frozenset({
    Role.ADMINISTRATOR,
    Role.PHYSICIAN,
    Role.NURSE,
    Role.RECORDS_CLERK,
    Role.DISTRICT_HEALTH_OFFICER,
})

CATCHMENT_SCOPED_ROLES = frozenset({Role.COMMUNITY_HEALTH_WORKER})

INTERACTION_SCOPED_ROLES = frozenset({
    Role.PHARMACIST,
    Role.CASHIER,
    Role.LABORATORY_TECHNICIAN,
})

# Upper bound of the INTEGER primary keys of the record tables
MAX_RECORD_ID = 2**31 - 1


def parse_record_id(value):
    """Return `value` as a positive id within the database INTEGER range, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not (value.isascii() and value.isdigit()):
            return None
    elif not isinstance(value, int):
        return None
    value = int(value)
    return value if 0 < value <= MAX_RECORD_ID else None


class AccessDecisionEngine:

    def decide(self, requester, patient_id) -> Decision:
        """Decide whether `requester` may access the record of `patient_id`."""
        if requester is None or not requester.active:
            return Decision.deny('requester_inactive')

        record_id = parse_record_id(patient_id)
        if record_id is None:
            return Decision.deny('patient_not_found')

        try:
            patient = db.session.get(Patient, record_id)
            if patient is None:
                return Decision.deny('patient_not_found')
            if not patient.is_active:
                return Decision.deny('patient_inactive')
            return self._apply_role_rules(requester, patient)
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.security_logger.error(
                f"Access rule evaluation failed: employee={requester.id} patient={patient_id} error={e}"
            )
            return Decision.failure('rule_evaluation_failed')

    def _apply_role_rules(self, requester, patient) -> Decision:
        role = requester.role

        if role in ORGANIZATION_WIDE_ROLES:
            return Decision.allow('organization_wide_role')

        if role in CATCHMENT_SCOPED_ROLES:
            if CatchmentAssignment.is_assigned(requester.id, patient.catchment_area):
                return Decision.allow('catchment_assignment')
            return Decision.deny('no_catchment_assignment')

        if role in INTERACTION_SCOPED_ROLES:
            if interaction_exists(requester.id, patient.id):
                return Decision.allow('prior_interaction')
            return Decision.deny('no_prior_interaction')

        return Decision.deny('unmapped_role')
