# /recordguard/security/identity.py
from dataclasses import dataclass
from flask import current_app
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request
from sqlalchemy.exc import SQLAlchemyError
from recordguard.extensions import db
from recordguard.models.user_models import Employee
from recordguard.security.permissions import Role


@dataclass(frozen=True)
class Requester:
    """The employee behind the current request, resolved once per request."""
    id: int
    role: Role | None
    active: bool
    session_id: str | None = None
    role_name: str | None = None

    @property
    def audit_role(self) -> str:
        if self.role is not None:
            return self.role.value
        return self.role_name or 'unknown'


def resolve(account_id, claims=None) -> Requester | None:
    """Build a Requester from a session identity.

    Returns None when there is no identity, the account does not exist or is
    inactive, or the account could not be loaded.
    """
    if account_id is None:
        return None
    claims = claims or {}
    try:
        employee_id = int(account_id)
    except (TypeError, ValueError):
        return None

    try:
        employee = db.session.get(Employee, employee_id)
        role_name = employee.role_name if employee else None
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.security_logger.error(f"Identity lookup failed for employee {employee_id}: {e}")
        return None

    if employee is None or not employee.is_active:
        return None

    role_hint = claims.get('role')
    if role_hint and role_hint != role_name:
        current_app.security_logger.warning(
            f"Session role '{role_hint}' does not match stored role '{role_name}' for employee {employee_id}"
        )

    return Requester(
        id=employee.id,
        role=Role.parse(role_name),
        active=True,
        session_id=claims.get('sid') or claims.get('jti'),
        role_name=role_name
    )


def current_requester() -> Requester | None:
    """Resolve the requester from the JWT carried by the current request."""
    verify_jwt_in_request()
    return resolve(get_jwt_identity(), get_jwt())
