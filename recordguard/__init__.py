import os
from flask import Flask
from recordguard.extensions import db, bcrypt, migrate, jwt, limiter, cors
from recordguard.utils.encryption_util import encryptor
from recordguard.utils.error_handlers import register_error_handlers
from recordguard.security import record_security
from recordguard.commands import register_commands
from config import config


def create_app(config_name=None):
    config_name = config_name or os.getenv('FLASK_CONFIG', 'default')
    config_class = config[config_name]

    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)
    cors.init_app(app, origins=app.config['ALLOWED_ORIGINS'], supports_credentials=True)

    # Initialize custom utilities
    encryptor.init_app(app)
    config_class.init_app(app)
    record_security.init_app(app)

    # Register models and blueprints
    from recordguard import models  # noqa: F401
    from recordguard.api import api_bp
    app.register_blueprint(api_bp, url_prefix='/api')

    register_error_handlers(app)
    register_commands(app)

    # JWT token blacklist checker
    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        from recordguard.models.system_models import RevokedToken
        return RevokedToken.query.filter_by(jti=jwt_payload['jti']).first() is not None

    return app
