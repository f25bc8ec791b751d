"""
Custom Validators
Normalisation and validation for phone numbers, amounts and free text
"""

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any
from xml.sax.saxutils import escape

from stkpay.errors import ValidationError

COUNTRY_CODE = '254'
SUBSCRIBER_LENGTH = 9

# Country code, mobile-network digit 7, eight more digits
MSISDN_PATTERN = re.compile(r'^2547\d{8}$')

ACCEPTED_PHONE_FORMATS = '07XXXXXXXX, +2547XXXXXXXX, 2547XXXXXXXX or 7XXXXXXXX'

_XML_ENTITIES = {"'": '&apos;', '"': '&quot;'}


def normalize_msisdn(phone: Any, field: str = 'phone') -> str:
    """
    Normalise a phone number to the gateway's MSISDN format (2547XXXXXXXX)

    Accepts: 0712345678, +254712345678, 254712345678, 712345678.
    Anything else is left as-is and then rejected.

    Args:
        phone: Phone number as entered by the client
        field: Field name used in the error message

    Returns:
        Canonical MSISDN

    Raises:
        ValidationError: If the result is not a valid MSISDN
    """
    if phone is None:
        phone = ''
    cleaned = re.sub(r'[\s\-]', '', str(phone))

    if cleaned.startswith('0'):
        normalized = COUNTRY_CODE + cleaned[1:]
    elif cleaned.startswith('+' + COUNTRY_CODE):
        normalized = cleaned[1:]
    elif cleaned.startswith(COUNTRY_CODE):
        normalized = cleaned
    elif cleaned.isdigit() and len(cleaned) == SUBSCRIBER_LENGTH:
        normalized = COUNTRY_CODE + cleaned
    else:
        normalized = cleaned

    if not MSISDN_PATTERN.match(normalized):
        raise ValidationError(
            f'Invalid {field} format. Use {ACCEPTED_PHONE_FORMATS}',
            details={field: phone}
        )

    return normalized


def validate_amount(amount: Any) -> int:
    """
    Validate a payment amount in whole currency units

    The gateway only accepts whole amounts. Fractions are rejected rather
    than rounded so the customer is never charged more than was requested.

    Raises:
        ValidationError: If the amount is missing, not numeric, not finite,
            not positive or not a whole number
    """
    if amount is None or isinstance(amount, bool):
        raise ValidationError('Amount is required and must be a number')

    if isinstance(amount, float) and not math.isfinite(amount):
        raise ValidationError('Amount must be a finite number')

    try:
        amount_decimal = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'Invalid amount format: {amount!r}')

    if not amount_decimal.is_finite():
        raise ValidationError('Amount must be a finite number')

    if amount_decimal <= 0:
        raise ValidationError('Amount must be greater than 0')

    if amount_decimal != amount_decimal.to_integral_value():
        raise ValidationError(f'Amount must be a whole number: {amount!r}')

    return int(amount_decimal)


def escape_xml(value: Any) -> str:
    """Escape the five reserved XML characters (& < > ' ")"""
    if value is None:
        return ''
    return escape(str(value), _XML_ENTITIES)
