from datetime import datetime
from sqlalchemy import select
from recordguard.extensions import db


class Patient(db.Model):
    """Model for storing encrypted patient information."""
    __tablename__ = 'patients'

    id = db.Column(db.Integer, primary_key=True)

    # --- Encrypted Patient PII ---
    full_name = db.Column(db.String(512), nullable=False)
    date_of_birth = db.Column(db.String(255))
    sex = db.Column(db.String(255))

    # --- Non-encrypted fields ---
    # Catchment area is the barangay-level unit that community health workers are assigned to.
    catchment_area = db.Column(db.String(50), nullable=False, index=True)
    municipality = db.Column(db.String(100))
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CatchmentAssignment(db.Model):
    """Links a community health worker to a catchment area."""
    __tablename__ = 'employee_catchment_assignments'

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False, index=True)
    catchment_area = db.Column(db.String(50), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    assigned_at = db.Column(db.DateTime, default=datetime.utcnow)
    revoked_at = db.Column(db.DateTime)

    employee = db.relationship('Employee', back_populates='catchment_assignments')

    __table_args__ = (
        db.Index('ix_catchment_employee_area', 'employee_id', 'catchment_area'),
    )

    @classmethod
    def is_assigned(cls, employee_id: int, catchment_area: str) -> bool:
        """True when an active assignment links the employee to the area."""
        if not catchment_area:
            return False
        stmt = select(cls.id).where(
            cls.employee_id == employee_id,
            cls.catchment_area == catchment_area,
            cls.is_active.is_(True)
        ).limit(1)
        return db.session.execute(stmt).first() is not None
