"""
Utils Package
Utility functions and helpers
"""

from stkpay.utils.logger import get_logger, RequestLogger
from stkpay.utils.validators import (
    normalize_msisdn,
    validate_amount,
    escape_xml
)

__all__ = [
    'get_logger',
    'RequestLogger',
    'normalize_msisdn',
    'validate_amount',
    'escape_xml'
]
