# /recordguard/utils/encryption_util.py
from cryptography.fernet import Fernet, InvalidToken
from flask import current_app


class Encryptor:
    """
    Fernet encryption for the PII columns of patients and employees.
    Initialized by the app factory with EMR_ENCRYPTION_KEY.
    """
    def __init__(self, app=None):
        self.fernet = None
        if app:
            self.init_app(app)

    def init_app(self, app):
        key = app.config.get('EMR_ENCRYPTION_KEY')
        if not key:
            raise ValueError("EMR_ENCRYPTION_KEY not set in the Flask application config.")
        self.fernet = Fernet(key.encode())

    def _suite(self):
        if self.fernet is None:
            raise RuntimeError("Encryptor has not been initialized with an app context.")
        return self.fernet

    def encrypt(self, data) -> str:
        return self._suite().encrypt(str(data).encode('utf-8')).decode('utf-8')

    def decrypt(self, token: str) -> str | None:
        """Decrypt a stored value; a corrupt or foreign value reads as None."""
        suite = self._suite()
        if not token:
            return None
        try:
            return suite.decrypt(token.encode('utf-8')).decode('utf-8')
        except InvalidToken:
            current_app.logger.error("Decryption failed: stored value is not a valid token for this key.")
            return None

    def decrypt_fields(self, obj, *names) -> dict:
        """Decrypt several encrypted attributes of a model instance into a dict."""
        return {name: self.decrypt(getattr(obj, name)) for name in names}


encryptor = Encryptor()
