"""
Health Check and Diagnostic Endpoints
"""

from datetime import datetime

from flask import Blueprint, jsonify
from sqlalchemy import text

from stkpay.errors import UpstreamError
from stkpay.extensions import db
from stkpay.services.payment_service import PaymentService
from stkpay.utils.logger import get_logger

health_bp = Blueprint('health', __name__)
logger = get_logger(__name__)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Basic health check endpoint

    Returns:
        200 if system is healthy
        503 if the database is unreachable
    """
    health_status = {
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': 'stkpay',
    }

    checks = {}
    overall_healthy = True

    # Database check
    try:
        db.session.execute(text('SELECT 1'))
        checks['database'] = {
            'status': 'healthy',
            'message': 'Database connection OK'
        }
    except Exception as e:
        checks['database'] = {
            'status': 'unhealthy',
            'message': f'Database error: {str(e)}'
        }
        overall_healthy = False

    health_status['checks'] = checks
    health_status['status'] = 'healthy' if overall_healthy else 'unhealthy'

    status_code = 200 if overall_healthy else 503

    return jsonify(health_status), status_code


@health_bp.route('/health/live', methods=['GET'])
def liveness_probe():
    """
    Liveness probe
    Returns 200 if the application is running
    """
    return jsonify({
        'status': 'alive',
        'timestamp': datetime.utcnow().isoformat()
    }), 200


@health_bp.route('/token', methods=['GET'])
def get_token():
    """
    Diagnostic: the current cached or freshly fetched gateway token
    """
    try:
        token = PaymentService.get_access_token()
        return jsonify({'access_token': token}), 200

    except UpstreamError as e:
        logger.error(f'Token fetch failed: {e.message} {e.details or ""}')
        return jsonify({
            'success': False,
            'error': 'Failed to get token',
            'message': e.message,
            'details': e.details
        }), e.status_code
