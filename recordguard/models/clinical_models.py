# /recordguard/models/clinical_models.py
from datetime import datetime
from sqlalchemy import select, union
from recordguard.extensions import db


class Consultation(db.Model):
    """Consultation record; doctor_id is the attending staff member."""
    __tablename__ = 'consultations'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False, index=True)
    chief_complaint = db.Column(db.Text)  # Encrypted
    diagnosis = db.Column(db.Text)  # Encrypted
    status = db.Column(db.String(30), default='completed')
    consulted_at = db.Column(db.DateTime, default=datetime.utcnow)


class Prescription(db.Model):
    """Prescription issued or dispensed for a patient."""
    __tablename__ = 'prescriptions'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), nullable=False, index=True)
    prescribed_by = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False, index=True)
    medication = db.Column(db.String(255), nullable=False)
    dosage = db.Column(db.String(100))
    status = db.Column(db.String(30), default='active')  # 'active', 'dispensed', 'cancelled'
    prescribed_at = db.Column(db.DateTime, default=datetime.utcnow)


class LabOrder(db.Model):
    """Laboratory order; ordered_by is the staff member handling it."""
    __tablename__ = 'lab_orders'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), nullable=False, index=True)
    ordered_by = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False, index=True)
    test_type = db.Column(db.String(100), nullable=False)
    status = db.Column(db.String(30), default='pending')  # 'pending', 'in_progress', 'completed'
    ordered_at = db.Column(db.DateTime, default=datetime.utcnow)


class BillingRecord(db.Model):
    """Billing/invoice record processed by a cashier."""
    __tablename__ = 'billing'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), nullable=False, index=True)
    processed_by = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False, index=True)
    total_amount = db.Column(db.Numeric(10, 2), default=0)
    payment_status = db.Column(db.String(30), default='unpaid')
    billed_at = db.Column(db.DateTime, default=datetime.utcnow)


def interaction_exists(employee_id: int, patient_id: int) -> bool:
    """True if the employee is the responsible staff member on any
    consultation, prescription, lab order or billing record of the patient."""
    interactions = union(
        select(Consultation.patient_id).where(
            Consultation.doctor_id == employee_id, Consultation.patient_id == patient_id),
        select(Prescription.patient_id).where(
            Prescription.prescribed_by == employee_id, Prescription.patient_id == patient_id),
        select(LabOrder.patient_id).where(
            LabOrder.ordered_by == employee_id, LabOrder.patient_id == patient_id),
        select(BillingRecord.patient_id).where(
            BillingRecord.processed_by == employee_id, BillingRecord.patient_id == patient_id),
    )
    return db.session.execute(interactions.limit(1)).first() is not None
