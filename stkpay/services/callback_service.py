"""
Callback Service
Reconciles asynchronous STK Push callbacks with stored transactions
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from marshmallow import ValidationError as SchemaValidationError

from stkpay.errors import MalformedCallbackError, ValidationError
from stkpay.models import Transaction
from stkpay.schemas.webhook_schema import MPesaCallbackSchema, StkCallback
from stkpay.services.transaction_store import TransactionStore
from stkpay.utils.logger import get_logger
from stkpay.utils.validators import escape_xml, normalize_msisdn

logger = get_logger(__name__)

callback_schema = MPesaCallbackSchema()

# Acknowledgment bodies expected by Daraja
ACKNOWLEDGMENT = {'ResultCode': 0, 'ResultDesc': 'Success'}
REJECTION_CODE = 1


def rejection(reason: str) -> Dict[str, Any]:
    return {'ResultCode': REJECTION_CODE, 'ResultDesc': f'Rejected: {reason}'}


class CallbackReconciler:
    """Turns a gateway callback into a terminal update of its transaction"""

    @staticmethod
    def parse(payload: Any) -> StkCallback:
        """
        Parse a raw callback body

        Raises:
            MalformedCallbackError: If Body.stkCallback or its required
                fields are missing or malformed
        """
        if not isinstance(payload, dict):
            raise MalformedCallbackError('Callback body must be a JSON object')

        try:
            return callback_schema.load(payload)
        except SchemaValidationError as e:
            raise MalformedCallbackError('No valid stkCallback found in body', details=e.messages) from e

    @staticmethod
    def reconcile(payload: Any) -> Transaction:
        """
        Apply a callback to the store

        The record is upserted, so a callback for a transaction whose pending
        record was never written still produces a record. Re-delivery of the
        same callback rewrites the same values.

        Args:
            payload: Parsed JSON callback body

        Returns:
            The stored transaction

        Raises:
            MalformedCallbackError: Nothing is written
            PersistenceError: The store rejected the write
        """
        callback = CallbackReconciler.parse(payload)

        logger.info(
            f'Received callback for {callback.checkout_request_id}: '
            f'ResultCode={callback.result_code} ResultDesc={callback.result_description!r}'
        )

        patch, insert_defaults = CallbackReconciler.build_patch(callback, payload)
        transaction = TransactionStore.upsert_by_checkout_id(
            callback.checkout_request_id,
            patch,
            insert_defaults=insert_defaults
        )

        logger.info(f'Transaction {callback.checkout_request_id} reconciled as {transaction.status.value}')
        return transaction

    @staticmethod
    def build_patch(callback: StkCallback, payload: Dict[str, Any]):
        """
        Split the extracted callback fields into (patch, insert_defaults)

        Request-owned fields only fill a record that the callback itself
        creates. A confirmed amount or a reported MerchantRequestID always
        overwrites.
        """
        amount = CallbackReconciler._extract_amount(callback)
        phone = CallbackReconciler._extract_phone(callback)

        patch = {
            'result_code': callback.result_code,
            'result_description': escape_xml(callback.result_description),
            'receipt_number': escape_xml(callback.get_value('MpesaReceiptNumber', '')),
            'transaction_timestamp': escape_xml(callback.get_value('TransactionDate', '')),
            'raw_callback_payload': payload,
        }
        insert_defaults = {
            'merchant_request_id': '',
            'amount': Decimal(0),
            'payer_phone': phone,
            'recipient_phone': phone,
        }

        if callback.merchant_request_id:
            patch['merchant_request_id'] = escape_xml(callback.merchant_request_id)
        if amount is not None:
            patch['amount'] = amount

        return patch, insert_defaults

    @staticmethod
    def _extract_phone(callback: StkCallback) -> str:
        value = callback.get_value('PhoneNumber')
        if value is None:
            return ''

        try:
            return normalize_msisdn(value, field='PhoneNumber')
        except ValidationError:
            logger.warning(f'Unusable PhoneNumber {value!r} in callback {callback.checkout_request_id}')
            return ''

    @staticmethod
    def _extract_amount(callback: StkCallback) -> Optional[Decimal]:
        value = callback.get_value('Amount')
        if value is None:
            return None

        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError):
            logger.warning(f'Unparsable Amount {value!r} in callback {callback.checkout_request_id}')
            return None

        if not amount.is_finite():
            logger.warning(f'Non-finite Amount {value!r} in callback {callback.checkout_request_id}')
            return None

        # Numeric(15, 2) holds at most 13 integer digits
        if amount.adjusted() >= 13:
            logger.warning(f'Out of range Amount {value!r} in callback {callback.checkout_request_id}')
            return None

        return amount
