from typing import Any, Dict, List, Optional

from stkpay.errors import ConflictError, PaymentNotFound, PersistenceError
from stkpay.models import Transaction
from stkpay.providers import get_provider, get_request_builder
from stkpay.services.transaction_store import TransactionStore
from stkpay.utils.logger import get_logger
from stkpay.utils.validators import normalize_msisdn

logger = get_logger(__name__)


class PaymentService:
    """STK Push initiation flow"""

    @staticmethod
    def initiate_payment(
            payer_phone: str,
            amount: Any,
            recipient_phone: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Send an STK Push request and record it as pending

        Args:
            payer_phone: Paying phone number in any accepted local format
            amount: Amount to charge
            recipient_phone: Number the payment is for, defaults to the payer

        Returns:
            The gateway's acknowledgment

        Raises:
            ValidationError: Bad phone or amount, nothing was sent
            UpstreamAuthError: Token exchange failed
            UpstreamGatewayError: STK Push request failed
        """
        payer = normalize_msisdn(payer_phone, field='payerPhone')
        recipient = normalize_msisdn(recipient_phone, field='recipientPhone') if recipient_phone else payer

        payload = get_request_builder().build(payer, amount, recipient_phone=recipient)

        response = get_provider().stk_push(payload)

        # The push already reached the customer's phone, so a failed write
        # must not turn into a failed response.
        PaymentService._record_pending(response, payer, recipient, payload['Amount'])

        return response

    @staticmethod
    def _record_pending(response: Dict[str, Any], payer: str, recipient: str, amount: int) -> None:
        checkout_request_id = response['CheckoutRequestID']
        merchant_request_id = response.get('MerchantRequestID')

        try:
            try:
                TransactionStore.create(
                    checkout_request_id,
                    merchant_request_id=merchant_request_id,
                    amount=amount,
                    payer_phone=payer,
                    recipient_phone=recipient,
                    result_description='',
                )
            except ConflictError:
                # The callback beat us to it
                logger.warning(f'Transaction {checkout_request_id} already recorded, backfilling request fields')
                TransactionStore.backfill_request_fields(
                    checkout_request_id,
                    merchant_request_id=merchant_request_id,
                    payer_phone=payer,
                    recipient_phone=recipient,
                    amount=amount,
                )
        except PersistenceError as e:
            logger.error(f'Could not record pending transaction {checkout_request_id}: {e.message}')

    @staticmethod
    def get_transaction(checkout_request_id: str) -> Transaction:
        """Get transaction by CheckoutRequestID"""
        transaction = TransactionStore.get(checkout_request_id)
        if not transaction:
            raise PaymentNotFound(f'Transaction {checkout_request_id} not found')
        return transaction

    @staticmethod
    def list_transactions(limit: int = 100) -> List[Transaction]:
        """Most recent transactions, newest first"""
        return TransactionStore.list(limit=limit)

    @staticmethod
    def get_access_token() -> str:
        """Current cached or freshly fetched bearer token"""
        return get_provider().get_access_token()
