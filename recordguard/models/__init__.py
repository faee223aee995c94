# Import every model module so db.create_all() and Flask-Migrate see all tables.
from recordguard.models import user_models, patient_models, clinical_models, system_models  # noqa: F401
