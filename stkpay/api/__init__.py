"""
API Blueprints Package
Registers all API blueprints
"""

from stkpay.api.payments import payments_bp
from stkpay.api.health import health_bp

# Export blueprints
__all__ = [
    'payments_bp',
    'health_bp',
    'register_blueprints'
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app

    Args:
        app: Flask application instance
    """
    app.register_blueprint(payments_bp, url_prefix='/payments')
    app.register_blueprint(health_bp)
