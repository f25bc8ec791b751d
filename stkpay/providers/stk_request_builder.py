import base64
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from stkpay.utils.validators import escape_xml, validate_amount

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

# Daraja caps AccountReference at 12 characters
ACCOUNT_REFERENCE_MAX_LENGTH = 12


def format_timestamp(moment: datetime) -> str:
    """YYYYMMDDhhmmss, as Daraja requires."""
    return moment.strftime(TIMESTAMP_FORMAT)


def generate_password(shortcode: str, passkey: str, timestamp: str) -> str:
    """Password = Base64(BusinessShortCode + Passkey + Timestamp)"""
    raw = f"{shortcode}{passkey}{timestamp}"
    return base64.b64encode(raw.encode("utf-8")).decode("utf-8")


class PaymentRequestBuilder:
    """Builds the Lipa na M-Pesa Online (STK Push) request body."""

    def __init__(
        self,
        shortcode: str,
        passkey: str,
        callback_url: str,
        transaction_type: str = "CustomerPayBillOnline",
        account_reference: Optional[str] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.shortcode = str(shortcode)
        self.passkey = passkey
        self.callback_url = callback_url
        self.transaction_type = transaction_type
        self.account_reference = account_reference or self.shortcode
        self._clock = clock

    def build(
        self,
        payer_phone: str,
        amount: Any,
        recipient_phone: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Build the STK Push payload.

        payer_phone and recipient_phone must already be normalised.
        The amount is validated here, before any outbound call is made.

        Raises:
            ValidationError: if the amount is missing, not positive or fractional
        """
        whole_amount = validate_amount(amount)

        timestamp = timestamp or format_timestamp(self._clock())
        password = generate_password(self.shortcode, self.passkey, timestamp)

        return {
            "BusinessShortCode": self.shortcode,
            "Password":          password,
            "Timestamp":         timestamp,
            "TransactionType":   self.transaction_type,
            "Amount":            whole_amount,
            "PartyA":            payer_phone,
            "PartyB":            self.shortcode,
            "PhoneNumber":       payer_phone,
            "CallBackURL":       self.callback_url,
            "AccountReference":  escape_xml(self.account_reference[:ACCOUNT_REFERENCE_MAX_LENGTH]),
            "TransactionDesc":   escape_xml(self.narrative(payer_phone, recipient_phone)),
        }

    @staticmethod
    def narrative(payer_phone: str, recipient_phone: Optional[str]) -> str:
        if recipient_phone and recipient_phone != payer_phone:
            return f"Payment for {recipient_phone}"
        return "Payment"
