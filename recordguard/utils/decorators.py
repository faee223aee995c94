from functools import wraps
from flask import request, current_app, jsonify
from recordguard.security.client_context import origin_allowed
from recordguard.security.identity import current_requester
from recordguard.security.permissions import has_permission


def requester_required(f):
    """Resolves the JWT session into a Requester and passes it as `requester`."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        requester = current_requester()
        if requester is None:
            return jsonify({'error': 'Employee not found or inactive'}), 403
        return f(*args, requester=requester, **kwargs)
    return decorated_function


def require_capability(capability):
    """Checks the requester's role against the medical record permission matrix.

    Must be applied below `requester_required`.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            requester = kwargs.get('requester')
            if requester is None or not has_permission(requester.role, capability):
                current_app.audit_logger.warning(
                    f"Capability denied: EmployeeID='{getattr(requester, 'id', None)}', Capability='{getattr(capability, 'value', capability)}'"
                )
                return jsonify({'error': 'Access not permitted'}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def trusted_origin(f):
    """Rejects requests whose Origin/Referer host is not trusted."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not origin_allowed(request.headers, current_app.config.get('TRUSTED_ORIGIN_HOSTS', set())):
            current_app.security_logger.warning(
                f"Rejected request from untrusted origin: Origin='{request.headers.get('Origin')}', "
                f"Referer='{request.headers.get('Referer')}'"
            )
            return jsonify({'error': 'Request origin not allowed'}), 403
        return f(*args, **kwargs)
    return decorated_function
