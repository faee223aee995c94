# /recordguard/extensions.py
from flask import request
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_cors import CORS


def client_address_key():
    """Limiter key: the routable client address, looking through proxy headers."""
    from recordguard.security.client_context import client_ip_address
    return client_ip_address(request.headers, request.remote_addr)


db = SQLAlchemy()
bcrypt = Bcrypt()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=client_address_key)
cors = CORS()
