from flask import Flask, jsonify
from flask_cors import CORS

from stkpay.config import config
from stkpay.errors import AppError, ConfigurationError
from stkpay.extensions import db
from stkpay.utils.logger import RequestLogger


def create_app(config_name='development'):
    """Application factory pattern"""
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])
    validate_config(app)

    # Initialize extensions
    db.init_app(app)
    CORS(app)
    RequestLogger(app)

    # Register blueprints
    from stkpay.api import register_blueprints
    register_blueprints(app)

    # Error handlers
    register_error_handlers(app)

    return app


def validate_config(app):
    """Refuse to start without the gateway settings"""
    missing = [key for key in app.config['REQUIRED_SETTINGS'] if not app.config.get(key)]
    if missing:
        raise ConfigurationError(f'Missing required settings: {", ".join(missing)}')


def register_error_handlers(app):
    """Register error handlers"""

    @app.errorhandler(AppError)
    def app_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({'error': 'Bad request', 'message': str(error)}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found', 'message': str(error)}), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error', 'message': str(error)}), 500
