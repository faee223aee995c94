import secrets
from datetime import datetime, timezone
from flask import request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token, create_refresh_token,
    get_jwt_identity, get_jwt
)
from recordguard.extensions import db
from recordguard.models.user_models import Employee
from recordguard.models.system_models import RevokedToken
from recordguard.security import record_security


def login_employee():
    """Handles employee login using hashed username lookups."""
    data = request.get_json(silent=True)
    if not data or not data.get('username') or not data.get('password'):
        return jsonify({'error': 'Username and password required'}), 400

    username = data['username']
    employee = Employee.query.filter_by(username_hash=Employee.create_hash(username)).first()

    if not employee or not employee.check_password(data['password']):
        current_app.audit_logger.warning("Failed login attempt for employee account")
        return jsonify({'error': 'Invalid credentials'}), 401
    if employee.account_locked:
        return jsonify({'error': 'Account locked due to multiple failed attempts'}), 423
    if not employee.is_active:
        return jsonify({'error': 'Account deactivated'}), 403

    # The session id ties CSRF tokens and audit entries to this login.
    # NOTE: No PII goes into the token payload.
    session_id = secrets.token_hex(16)
    claims = {'role': employee.role_name, 'sid': session_id}
    access_token = create_access_token(identity=str(employee.id), additional_claims=claims)
    refresh_token = create_refresh_token(identity=str(employee.id), additional_claims=claims)

    current_app.audit_logger.info(f"Action='LOGIN', EmployeeID='{employee.id}', Session='{session_id}'")
    return jsonify({
        'access_token': access_token,
        'refresh_token': refresh_token,
        'employee': {'id': employee.id, 'role': employee.role_name}
    }), 200


def refresh_session():
    employee_id = get_jwt_identity()
    employee = db.session.get(Employee, int(employee_id))
    if not employee or not employee.is_active:
        return jsonify({'error': 'Employee not found or inactive'}), 403

    claims = {'role': employee.role_name, 'sid': get_jwt().get('sid')}
    access_token = create_access_token(identity=employee_id, additional_claims=claims)
    return jsonify({'access_token': access_token}), 200


def logout_employee():
    token = get_jwt()
    expires_at = datetime.fromtimestamp(token['exp'], tz=timezone.utc).replace(tzinfo=None)
    db.session.add(RevokedToken(jti=token['jti'], expires_at=expires_at))
    db.session.commit()

    if token.get('sid'):
        record_security.csrf.purge_session(token['sid'])

    current_app.audit_logger.info(f"Action='LOGOUT', EmployeeID='{get_jwt_identity()}', Session='{token.get('sid')}'")
    return jsonify({'message': 'Successfully logged out'}), 200
