from flask import Blueprint, current_app, jsonify, request
from marshmallow import ValidationError as SchemaValidationError

from stkpay.errors import AppError, MalformedCallbackError, PersistenceError
from stkpay.schemas.payment_schema import (
    InitiatePaymentSchema,
    ListTransactionsSchema,
    TransactionSchema
)
from stkpay.services.callback_service import ACKNOWLEDGMENT, CallbackReconciler, rejection
from stkpay.services.payment_service import PaymentService
from stkpay.utils.logger import get_logger

payments_bp = Blueprint('payments', __name__)
logger = get_logger(__name__)

initiate_schema = InitiatePaymentSchema()
list_schema = ListTransactionsSchema()
transaction_schema = TransactionSchema()


@payments_bp.route('', methods=['POST'])
def initiate_payment():
    """
    Send an STK Push to the payer's phone

    Body:
        {
            "payerPhone": "0712345678",
            "amount": 50,
            "recipientPhone": "0722000000"   // optional, defaults to payerPhone
        }
    """
    try:
        data = initiate_schema.load(request.get_json(silent=True) or {})

        response = PaymentService.initiate_payment(
            payer_phone=data['payer_phone'],
            amount=data['amount'],
            recipient_phone=data.get('recipient_phone')
        )

        return jsonify({
            'success': True,
            'data': response
        }), 200

    except SchemaValidationError as e:
        return jsonify({
            'success': False,
            'error': 'Validation error',
            'details': e.messages
        }), 400

    except AppError as e:
        logger.error(f'STK Push failed: {e.message} {e.details or ""}')
        return jsonify(e.to_dict()), e.status_code


@payments_bp.route('/callback', methods=['POST'])
def receive_callback():
    """
    Receive the asynchronous STK Push result from the gateway

    The acknowledgment confirms receipt, not payment success, so failed
    payments are acknowledged too.
    """
    payload = request.get_json(silent=True)

    try:
        CallbackReconciler.reconcile(payload)

    except MalformedCallbackError as e:
        logger.warning(f'Rejected callback: {e.message} {e.details or ""}')
        return jsonify(rejection(e.message)), 400

    except PersistenceError as e:
        logger.error(f'Failed to store callback: {e.message}')
        return jsonify(rejection('could not store callback')), 500

    return jsonify(ACKNOWLEDGMENT), 200


@payments_bp.route('', methods=['GET'])
def list_payments():
    """
    List the most recent transactions, newest first

    Query Parameters:
        - limit: Number of records (default: 100, max: 100)
    """
    try:
        args = list_schema.load(request.args)
        limit = min(args['limit'], current_app.config.get('TRANSACTIONS_LIST_LIMIT', 100))

        transactions = PaymentService.list_transactions(limit=limit)

        return jsonify({
            'success': True,
            'data': transaction_schema.dump(transactions, many=True)
        }), 200

    except SchemaValidationError as e:
        return jsonify({
            'success': False,
            'error': 'Validation error',
            'details': e.messages
        }), 400

    except AppError as e:
        return jsonify(e.to_dict()), e.status_code


@payments_bp.route('/<checkout_request_id>', methods=['GET'])
def get_payment(checkout_request_id):
    """
    Get one transaction

    Path Parameters:
        - checkout_request_id: Gateway CheckoutRequestID
    """
    try:
        transaction = PaymentService.get_transaction(checkout_request_id)

        return jsonify({
            'success': True,
            'data': transaction_schema.dump(transaction)
        }), 200

    except AppError as e:
        return jsonify(e.to_dict()), e.status_code
