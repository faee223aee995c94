"""
Tests for the Flask CLI maintenance commands.
"""

from datetime import datetime, timedelta

from recordguard.commands import DEFAULT_ROLES
from recordguard.extensions import db
from recordguard.models.patient_models import CatchmentAssignment
from recordguard.models.system_models import CsrfToken
from recordguard.models.user_models import Employee, StaffRole
from recordguard.security.permissions import Role
from tests.conftest import PASSWORD


def test_seeded_role_names_all_parse():
    assert all(Role.parse(role['name']) is not None for role in DEFAULT_ROLES)


def test_init_db_is_idempotent(app):
    result = app.test_cli_runner().invoke(args=['init-db'])
    assert result.exit_code == 0
    assert StaffRole.query.count() == len(DEFAULT_ROLES)


def test_create_employee(app):
    result = app.test_cli_runner().invoke(
        args=['create-employee', 'Nurse.Joy', 'nurse', '--password', PASSWORD]
    )
    assert result.exit_code == 0, result.output

    employee = Employee.query.filter_by(username_hash=Employee.create_hash('nurse.joy')).one()
    assert employee.role_name == 'nurse'
    assert employee.check_password(PASSWORD)


def test_create_employee_rejects_unknown_role_and_weak_password(app):
    runner = app.test_cli_runner()
    assert runner.invoke(args=['create-employee', 'x', 'janitor', '--password', PASSWORD]).exit_code != 0
    assert runner.invoke(args=['create-employee', 'x', 'nurse', '--password', 'short']).exit_code != 0
    assert Employee.query.count() == 0


def test_assign_and_revoke_catchment(app, make_employee):
    worker = make_employee('bhw', employee_id=42)
    runner = app.test_cli_runner()

    assert runner.invoke(args=['assign-catchment', '42', 'B-07']).exit_code == 0
    assert CatchmentAssignment.is_assigned(worker.id, 'B-07')

    result = runner.invoke(args=['assign-catchment', '42', 'B-07'])
    assert 'already assigned' in result.output
    assert CatchmentAssignment.query.count() == 1

    assert runner.invoke(args=['revoke-catchment', '42', 'B-07']).exit_code == 0
    assert not CatchmentAssignment.is_assigned(worker.id, 'B-07')
    assert CatchmentAssignment.query.one().revoked_at is not None


def test_assign_catchment_unknown_employee(app):
    result = app.test_cli_runner().invoke(args=['assign-catchment', '404', 'B-07'])
    assert result.exit_code != 0


def test_purge_csrf_tokens(app):
    db.session.add(CsrfToken(token_hash='a' * 64, session_id='s', issued_at=datetime.utcnow() - timedelta(hours=3)))
    db.session.add(CsrfToken(token_hash='b' * 64, session_id='s', issued_at=datetime.utcnow()))
    db.session.commit()

    result = app.test_cli_runner().invoke(args=['purge-csrf-tokens'])
    assert result.exit_code == 0
    assert 'Removed 1' in result.output
    assert CsrfToken.query.count() == 1
