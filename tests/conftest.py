"""
Pytest Configuration and Fixtures
"""
import json
import os

# No log files during tests
os.environ['LOG_DIR'] = ''

import pytest
from unittest.mock import Mock

from stkpay import create_app
from stkpay.extensions import db as _db
from stkpay.providers import get_provider
from stkpay.services.transaction_store import TransactionStore


@pytest.fixture(scope='function')
def app():
    """Create application with a fresh in-memory database"""
    app = create_app('testing')

    ctx = app.app_context()
    ctx.push()
    _db.create_all()

    yield app

    _db.session.remove()
    _db.drop_all()
    ctx.pop()


@pytest.fixture(scope='function')
def session(app):
    """Database session for a test"""
    return _db.session


@pytest.fixture(scope='function')
def client(app):
    """Create a test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def provider(app):
    """The app's M-Pesa gateway client"""
    return get_provider()


@pytest.fixture
def http_response():
    """Factory for mock requests.Response objects"""

    def _make(json_data, status_code=200):
        resp = Mock()
        resp.ok = 200 <= status_code < 400
        resp.status_code = status_code
        resp.json.return_value = json_data
        resp.text = json.dumps(json_data)
        resp.headers = {"Content-Type": "application/json"}
        return resp

    return _make


@pytest.fixture
def token_response(http_response):
    """Valid Daraja OAuth token response (expires in ~1 hour)"""
    return http_response({"access_token": "daraja_tok_abc", "expires_in": "3599"})


@pytest.fixture
def stk_response(http_response):
    """Daraja acknowledgment of an accepted STK Push"""
    return http_response({
        "MerchantRequestID":   "mrq-001",
        "CheckoutRequestID":   "ws_CO_ABC123",
        "ResponseCode":        "0",
        "ResponseDescription": "Success. Request accepted for processing",
        "CustomerMessage":     "Success. Request accepted for processing",
    })


@pytest.fixture
def make_callback():
    """Factory for Daraja STK Push callback bodies"""

    def _make(checkout_request_id='ws_CO_ABC123', result_code=0,
              result_desc='The service request is processed successfully.',
              items=None, merchant_request_id='mrq-001'):
        stk = {
            'MerchantRequestID': merchant_request_id,
            'CheckoutRequestID': checkout_request_id,
            'ResultCode': result_code,
            'ResultDesc': result_desc,
        }
        if items is not None:
            stk['CallbackMetadata'] = {'Item': items}
        return {'Body': {'stkCallback': stk}}

    return _make


@pytest.fixture
def success_items():
    return [
        {'Name': 'Amount', 'Value': 50},
        {'Name': 'MpesaReceiptNumber', 'Value': 'NLJ7RT61SV'},
        {'Name': 'Balance'},
        {'Name': 'TransactionDate', 'Value': 20191219102115},
        {'Name': 'PhoneNumber', 'Value': 254712345678},
    ]


@pytest.fixture(scope='function')
def sample_transaction(session):
    """A pending transaction as written by the initiation flow"""
    return TransactionStore.create(
        'ws_CO_ABC123',
        merchant_request_id='mrq-001',
        amount=50,
        payer_phone='254712345678',
        recipient_phone='254712345678',
    )
