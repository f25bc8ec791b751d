"""
Callback Validation Schemas
Parses the Daraja STK Push callback into typed objects
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, List, Optional

from marshmallow import EXCLUDE, Schema, fields, post_load, pre_load, validate

from stkpay.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CallbackItem:
    name: str
    value: Any = None


@dataclass
class StkCallback:
    checkout_request_id: str
    result_code: int
    merchant_request_id: str = ''
    result_description: str = ''
    items: Optional[List[CallbackItem]] = field(default=None)

    @property
    def has_metadata(self) -> bool:
        return self.items is not None

    def get_value(self, name: str, default: Any = None) -> Any:
        """Value of the metadata item with exactly this name"""
        for item in self.items or []:
            if item.name == name:
                return default if item.value is None else item.value
        return default


def _text(value: Any) -> str:
    return '' if value is None else str(value)


class CallbackItemSchema(Schema):
    """One CallbackMetadata.Item entry"""

    class Meta:
        unknown = EXCLUDE

    name = fields.Str(required=True, data_key='Name')
    value = fields.Raw(load_default=None, allow_none=True, data_key='Value')

    @post_load
    def make_item(self, data, **kwargs):
        return CallbackItem(**data)


class CallbackMetadataSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    items = fields.List(fields.Nested(CallbackItemSchema), load_default=list, data_key='Item')

    @pre_load
    def drop_unusable_items(self, data, **kwargs):
        # Entries without a usable Name are dropped, never fatal
        if not isinstance(data, Mapping):
            logger.warning(f'Ignoring malformed CallbackMetadata: {data!r}')
            return {}
        if 'Item' not in data:
            return data

        items = data['Item']
        if not isinstance(items, list):
            logger.warning(f'Ignoring malformed CallbackMetadata.Item: {items!r}')
            items = []

        kept = [
            item for item in items
            if isinstance(item, Mapping) and isinstance(item.get('Name'), str) and item['Name']
        ]
        if len(kept) != len(items):
            logger.warning(f'Dropped {len(items) - len(kept)} unusable CallbackMetadata item(s)')

        return {**data, 'Item': kept}


class StkCallbackSchema(Schema):
    """Body.stkCallback"""

    class Meta:
        unknown = EXCLUDE

    # Optional text, kept as sent and stringified below
    merchant_request_id = fields.Raw(load_default='', allow_none=True, data_key='MerchantRequestID')
    checkout_request_id = fields.Str(required=True, validate=validate.Length(min=1, max=255), data_key='CheckoutRequestID')
    result_code = fields.Int(required=True, data_key='ResultCode')
    result_description = fields.Raw(load_default='', allow_none=True, data_key='ResultDesc')
    metadata = fields.Nested(CallbackMetadataSchema, load_default=None, allow_none=True, data_key='CallbackMetadata')

    @post_load
    def make_callback(self, data, **kwargs):
        metadata = data.pop('metadata', None)
        return StkCallback(
            checkout_request_id=data['checkout_request_id'],
            result_code=data['result_code'],
            merchant_request_id=_text(data.get('merchant_request_id')),
            result_description=_text(data.get('result_description')),
            items=metadata['items'] if metadata is not None else None,
        )


class CallbackBodySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    stk_callback = fields.Nested(StkCallbackSchema, required=True, data_key='stkCallback')

    @pre_load
    def accept_legacy_key(self, data, **kwargs):
        # Some gateway versions capitalise the key
        if isinstance(data, Mapping) and 'stkCallback' not in data and 'STKCallback' in data:
            data = dict(data)
            data['stkCallback'] = data.pop('STKCallback')
        return data


class MPesaCallbackSchema(Schema):
    """M-Pesa STK Push callback validation schema"""

    class Meta:
        unknown = EXCLUDE

    body = fields.Nested(CallbackBodySchema, required=True, data_key='Body')

    @post_load
    def unwrap(self, data, **kwargs):
        return data['body']['stk_callback']
