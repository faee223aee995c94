# /recordguard/api/routes.py

from flask_jwt_extended import jwt_required
from . import api_bp
from recordguard.extensions import limiter
from recordguard.security import Capability
from recordguard.utils.decorators import requester_required, require_capability, trusted_origin
from .controllers import auth_controller, medical_record_controller, audit_controller


# --- Authentication Endpoints ---
@api_bp.route('/auth/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    return auth_controller.login_employee()

@api_bp.route('/auth/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    return auth_controller.refresh_session()

@api_bp.route('/auth/logout', methods=['POST'])
@jwt_required()
def logout():
    return auth_controller.logout_employee()


# --- Medical Record Print Endpoints ---
@api_bp.route('/medical-records/csrf-token', methods=['GET'])
@jwt_required()
@requester_required
def csrf_token_route(requester):
    return medical_record_controller.issue_csrf_token(requester)

@api_bp.route('/medical-records/preview', methods=['POST'])
@jwt_required()
@trusted_origin
@requester_required
def preview_record_route(requester):
    return medical_record_controller.preview_record(requester)

@api_bp.route('/medical-records/generate', methods=['POST'])
@jwt_required()
@trusted_origin
@requester_required
def generate_record_route(requester):
    return medical_record_controller.generate_record(requester)


# --- Audit Reporting Endpoints ---
@api_bp.route('/medical-records/audit-log', methods=['GET'])
@jwt_required()
@requester_required
@require_capability(Capability.AUDIT)
def audit_log_route(requester):
    return audit_controller.get_audit_log(requester)

@api_bp.route('/medical-records/access-log', methods=['GET'])
@jwt_required()
@requester_required
@require_capability(Capability.AUDIT)
def access_log_route(requester):
    return audit_controller.get_access_log(requester)
