"""
Schemas Package
Marshmallow schemas for request/response validation
"""

from stkpay.schemas.payment_schema import (
    InitiatePaymentSchema,
    ListTransactionsSchema,
    TransactionSchema
)
from stkpay.schemas.webhook_schema import (
    MPesaCallbackSchema,
    StkCallback
)

__all__ = [
    'InitiatePaymentSchema',
    'ListTransactionsSchema',
    'TransactionSchema',
    'MPesaCallbackSchema',
    'StkCallback'
]
