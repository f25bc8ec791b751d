from marshmallow import EXCLUDE, Schema, fields, validate


class InitiatePaymentSchema(Schema):
    """STK Push initiation request schema"""

    class Meta:
        unknown = EXCLUDE

    payer_phone = fields.Str(required=True, validate=validate.Length(min=1), data_key='payerPhone')
    amount = fields.Decimal(required=True)
    recipient_phone = fields.Str(required=False, allow_none=True, load_default=None, data_key='recipientPhone')


class ListTransactionsSchema(Schema):
    """Query parameters for the transaction listing"""

    class Meta:
        unknown = EXCLUDE

    limit = fields.Int(load_default=100, validate=validate.Range(min=1))


class TransactionSchema(Schema):
    """Transaction response schema"""
    id = fields.UUID(dump_only=True)
    merchant_request_id = fields.Str(dump_only=True, data_key='merchantRequestId')
    checkout_request_id = fields.Str(dump_only=True, data_key='checkoutRequestId')
    result_code = fields.Int(dump_only=True, allow_none=True, data_key='resultCode')
    result_description = fields.Str(dump_only=True, data_key='resultDescription')
    status = fields.Function(lambda obj: obj.status.value, dump_only=True)
    amount = fields.Float(dump_only=True)
    receipt_number = fields.Str(dump_only=True, data_key='receiptNumber')
    transaction_timestamp = fields.Str(dump_only=True, data_key='transactionTimestamp')
    payer_phone = fields.Str(dump_only=True, data_key='payerPhone')
    recipient_phone = fields.Str(dump_only=True, data_key='recipientPhone')
    raw_callback_payload = fields.Raw(dump_only=True, data_key='rawCallbackPayload')
    created_at = fields.DateTime(dump_only=True, data_key='createdAt')
    updated_at = fields.DateTime(dump_only=True, data_key='updatedAt')
