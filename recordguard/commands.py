import click
from datetime import datetime
from flask.cli import with_appcontext
from recordguard.extensions import db
from recordguard.models.user_models import Employee, StaffRole
from recordguard.models.patient_models import CatchmentAssignment
from recordguard.models.system_models import CsrfToken
from recordguard.security import record_security

# Role names as used by the health office; each one parses to a recordguard Role.
DEFAULT_ROLES = [
    {'name': 'admin', 'description': 'System administrator'},
    {'name': 'doctor', 'description': 'Physician'},
    {'name': 'nurse', 'description': 'Nursing staff'},
    {'name': 'records_officer', 'description': 'Medical records clerk'},
    {'name': 'dho', 'description': 'District health officer'},
    {'name': 'bhw', 'description': 'Barangay (community) health worker'},
    {'name': 'pharmacist', 'description': 'Pharmacy staff'},
    {'name': 'cashier', 'description': 'Billing and cashiering staff'},
    {'name': 'laboratory_tech', 'description': 'Laboratory technician'},
]


def seed_roles():
    """Create the default staff roles that do not exist yet."""
    for role_data in DEFAULT_ROLES:
        if not StaffRole.query.filter_by(name=role_data['name']).first():
            db.session.add(StaffRole(**role_data))
    db.session.commit()


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create all tables and seed staff roles."""
    db.create_all()
    seed_roles()
    click.echo("Database initialized successfully with staff roles!")


@click.command('create-employee')
@click.argument('username')
@click.argument('role_name')
@click.password_option()
@with_appcontext
def create_employee_command(username, role_name, password):
    """Create an employee account with the given role."""
    from recordguard.utils.encryption_util import encryptor

    role = StaffRole.query.filter_by(name=role_name).first()
    if not role:
        raise click.ClickException(f"Unknown role '{role_name}'. Run init-db first.")
    if Employee.query.filter_by(username_hash=Employee.create_hash(username)).first():
        raise click.ClickException(f"Employee '{username}' already exists.")

    employee = Employee(
        username=encryptor.encrypt(username),
        username_hash=Employee.create_hash(username),
        role_id=role.id
    )
    try:
        employee.set_password(password)
    except ValueError as e:
        raise click.ClickException(str(e))
    db.session.add(employee)
    db.session.commit()
    click.echo(f"Created employee {employee.id} with role '{role_name}'.")


@click.command('assign-catchment')
@click.argument('employee_id', type=int)
@click.argument('catchment_area')
@with_appcontext
def assign_catchment_command(employee_id, catchment_area):
    """Assign a community health worker to a catchment area."""
    employee = db.session.get(Employee, employee_id)
    if not employee:
        raise click.ClickException(f"Employee {employee_id} not found.")
    if CatchmentAssignment.is_assigned(employee_id, catchment_area):
        click.echo(f"Employee {employee_id} is already assigned to {catchment_area}.")
        return
    db.session.add(CatchmentAssignment(employee_id=employee_id, catchment_area=catchment_area))
    db.session.commit()
    click.echo(f"Assigned employee {employee_id} to {catchment_area}.")


@click.command('revoke-catchment')
@click.argument('employee_id', type=int)
@click.argument('catchment_area')
@with_appcontext
def revoke_catchment_command(employee_id, catchment_area):
    """Deactivate an employee's assignment to a catchment area."""
    assignments = CatchmentAssignment.query.filter_by(
        employee_id=employee_id, catchment_area=catchment_area, is_active=True
    ).all()
    for assignment in assignments:
        assignment.is_active = False
        assignment.revoked_at = datetime.utcnow()
    db.session.commit()
    click.echo(f"Revoked {len(assignments)} assignment(s) for employee {employee_id} in {catchment_area}.")


@click.command('purge-csrf-tokens')
@with_appcontext
def purge_csrf_tokens_command():
    """Delete expired CSRF tokens."""
    cutoff = datetime.utcnow() - record_security.csrf.lifetime
    removed = CsrfToken.sweep_expired(cutoff)
    db.session.commit()
    click.echo(f"Removed {removed} expired CSRF token(s).")


def register_commands(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(create_employee_command)
    app.cli.add_command(assign_catchment_command)
    app.cli.add_command(revoke_catchment_command)
    app.cli.add_command(purge_csrf_tokens_command)
