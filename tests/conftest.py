import secrets
import pytest
from flask_jwt_extended import create_access_token

from recordguard import create_app
from recordguard.commands import seed_roles
from recordguard.extensions import db
from recordguard.models.patient_models import Patient
from recordguard.models.user_models import Employee, StaffRole
from recordguard.security.client_context import ClientContext
from recordguard.security.identity import resolve
from recordguard.utils.encryption_util import encryptor

PASSWORD = 'Correct-Horse-42!'


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        seed_roles()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_employee(app):
    """Factory for employees; unknown role names get a StaffRole row of their own."""
    def _make(role_name='doctor', active=True, employee_id=None, username=None):
        role = StaffRole.query.filter_by(name=role_name).first()
        if role is None:
            role = StaffRole(name=role_name)
            db.session.add(role)
            db.session.flush()
        username = username or f"{role_name}-{employee_id or secrets.token_hex(4)}"
        employee = Employee(
            id=employee_id,
            username=encryptor.encrypt(username),
            username_hash=Employee.create_hash(username),
            role_id=role.id,
            is_active=active
        )
        employee.set_password(PASSWORD)
        db.session.add(employee)
        db.session.commit()
        return employee
    return _make


@pytest.fixture
def make_patient(app):
    def _make(patient_id=None, catchment_area='B-07', active=True, full_name='Maria Santos'):
        patient = Patient(
            id=patient_id,
            full_name=encryptor.encrypt(full_name),
            date_of_birth=encryptor.encrypt('1987-03-14'),
            sex=encryptor.encrypt('F'),
            catchment_area=catchment_area,
            municipality='San Isidro',
            is_active=active
        )
        db.session.add(patient)
        db.session.commit()
        return patient
    return _make


@pytest.fixture
def requester_for(app):
    """Resolve an employee the way a request with a valid session would."""
    def _resolve(employee, session_id='session-1'):
        return resolve(employee.id, {'role': employee.role_name, 'sid': session_id})
    return _resolve


@pytest.fixture
def auth_headers(app):
    def _headers(employee, session_id='session-1'):
        token = create_access_token(
            identity=str(employee.id),
            additional_claims={'role': employee.role_name, 'sid': session_id}
        )
        return {'Authorization': f'Bearer {token}'}
    return _headers


@pytest.fixture
def context():
    return ClientContext(
        ip_address='203.0.113.10',
        user_agent='pytest',
        session_id='session-1',
        role='physician'
    )
