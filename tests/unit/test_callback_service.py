"""
Unit Tests for CallbackReconciler
"""

import pytest
from decimal import Decimal

from stkpay.errors import MalformedCallbackError
from stkpay.models import Transaction, TransactionStatus
from stkpay.services.callback_service import CallbackReconciler


class TestCallbackParsing:
    """Test cases for CallbackReconciler.parse"""

    def test_parse_success_callback(self, make_callback, success_items):
        callback = CallbackReconciler.parse(make_callback(items=success_items))

        assert callback.checkout_request_id == 'ws_CO_ABC123'
        assert callback.merchant_request_id == 'mrq-001'
        assert callback.result_code == 0
        assert callback.has_metadata is True
        assert callback.get_value('MpesaReceiptNumber') == 'NLJ7RT61SV'
        assert callback.get_value('Balance', '') == ''
        assert callback.get_value('Missing', 'x') == 'x'

    def test_parse_failure_callback_has_no_metadata(self, make_callback):
        callback = CallbackReconciler.parse(make_callback(result_code=1032, result_desc='Request cancelled by user'))

        assert callback.result_code == 1032
        assert callback.has_metadata is False

    def test_string_result_code_is_accepted(self, make_callback):
        assert CallbackReconciler.parse(make_callback(result_code='0')).result_code == 0

    def test_legacy_capitalised_key_is_accepted(self):
        payload = {'Body': {'STKCallback': {'CheckoutRequestID': 'ws_CO_L', 'ResultCode': 0}}}

        assert CallbackReconciler.parse(payload).checkout_request_id == 'ws_CO_L'

    def test_optional_fields_default_to_empty(self):
        payload = {'Body': {'stkCallback': {'CheckoutRequestID': 'ws_1', 'ResultCode': 0}}}

        callback = CallbackReconciler.parse(payload)

        assert callback.merchant_request_id == ''
        assert callback.result_description == ''

    def test_oversized_checkout_id_is_rejected(self):
        payload = {'Body': {'stkCallback': {'CheckoutRequestID': 'w' * 256, 'ResultCode': 0}}}

        with pytest.raises(MalformedCallbackError):
            CallbackReconciler.parse(payload)

    def test_unnamed_items_are_dropped(self, make_callback):
        items = [
            {'Name': 'Amount', 'Value': 50},
            {'Value': 'orphan'},
            {'Name': '', 'Value': 'blank'},
            {'Name': 7, 'Value': 'numeric'},
            'not-an-item',
        ]

        callback = CallbackReconciler.parse(make_callback(items=items))

        assert [item.name for item in callback.items] == ['Amount']
        assert callback.get_value('Amount') == 50

    @pytest.mark.parametrize('metadata', ['not-metadata', {'Item': 'not-a-list'}, {'Item': None}])
    def test_malformed_metadata_is_ignored(self, metadata):
        payload = {'Body': {'stkCallback': {
            'CheckoutRequestID': 'ws_1', 'ResultCode': 0, 'CallbackMetadata': metadata,
        }}}

        callback = CallbackReconciler.parse(payload)

        assert callback.result_code == 0
        assert callback.items == []

    def test_non_string_optional_text_is_stringified(self):
        payload = {'Body': {'stkCallback': {
            'CheckoutRequestID': 'ws_1', 'ResultCode': 0, 'MerchantRequestID': 29115, 'ResultDesc': None,
        }}}

        callback = CallbackReconciler.parse(payload)

        assert callback.merchant_request_id == '29115'
        assert callback.result_description == ''

    @pytest.mark.parametrize('payload', [
        None,
        [],
        'Body',
        {},
        {'Body': None},
        {'Body': {}},
        {'Body': {'stkCallback': None}},
        {'Body': {'stkCallback': {'ResultCode': 0}}},
        {'Body': {'stkCallback': {'CheckoutRequestID': '', 'ResultCode': 0}}},
        {'Body': {'stkCallback': {'CheckoutRequestID': 'ws_1'}}},
        {'Body': {'stkCallback': {'CheckoutRequestID': 'ws_1', 'ResultCode': 'ok'}}},
    ])
    def test_malformed_callbacks_are_rejected(self, payload):
        with pytest.raises(MalformedCallbackError):
            CallbackReconciler.parse(payload)


class TestCallbackReconciliation:
    """Test cases for CallbackReconciler.reconcile"""

    def test_documented_example(self, session):
        payload = {'Body': {'stkCallback': {
            'CheckoutRequestID': 'ws_1',
            'ResultCode': 0,
            'ResultDesc': 'Success',
            'CallbackMetadata': {'Item': [
                {'Name': 'Amount', 'Value': 50},
                {'Name': 'MpesaReceiptNumber', 'Value': 'ABC123'},
            ]},
        }}}

        transaction = CallbackReconciler.reconcile(payload)

        assert transaction.checkout_request_id == 'ws_1'
        assert transaction.result_code == 0
        assert transaction.receipt_number == 'ABC123'
        assert transaction.amount == 50
        assert transaction.status == TransactionStatus.SUCCEEDED

    def test_success_updates_pending_record(self, session, sample_transaction, make_callback, success_items):
        payload = make_callback(items=success_items)

        transaction = CallbackReconciler.reconcile(payload)

        assert Transaction.query.count() == 1
        assert transaction.id == sample_transaction.id
        assert transaction.status == TransactionStatus.SUCCEEDED
        assert transaction.result_description == 'The service request is processed successfully.'
        assert transaction.amount == Decimal('50')
        assert transaction.receipt_number == 'NLJ7RT61SV'
        assert transaction.transaction_timestamp == '20191219102115'
        assert transaction.payer_phone == '254712345678'
        assert transaction.raw_callback_payload == payload

    def test_failure_without_metadata_on_empty_store(self, session, make_callback):
        transaction = CallbackReconciler.reconcile(
            make_callback(checkout_request_id='ws_CO_F', result_code=1032, result_desc='Request cancelled by user')
        )

        assert transaction.status == TransactionStatus.FAILED
        assert transaction.result_code == 1032
        assert transaction.amount == 0
        assert transaction.receipt_number == ''
        assert transaction.transaction_timestamp == ''
        assert transaction.payer_phone == ''

    def test_failure_keeps_requested_amount(self, session, sample_transaction, make_callback):
        transaction = CallbackReconciler.reconcile(make_callback(result_code=1032, result_desc='Cancelled'))

        assert transaction.status == TransactionStatus.FAILED
        assert transaction.amount == Decimal('50')
        assert transaction.payer_phone == '254712345678'

    def test_unknown_checkout_id_still_creates_record(self, session, make_callback, success_items):
        transaction = CallbackReconciler.reconcile(make_callback(checkout_request_id='ws_CO_ORPHAN', items=success_items))

        assert Transaction.query.count() == 1
        assert transaction.checkout_request_id == 'ws_CO_ORPHAN'
        assert transaction.payer_phone == '254712345678'
        assert transaction.recipient_phone == '254712345678'
        assert transaction.amount == Decimal('50')

    def test_callback_phone_does_not_override_request_phone(self, session, sample_transaction, make_callback):
        items = [{'Name': 'Amount', 'Value': 50}, {'Name': 'PhoneNumber', 'Value': 254799999999}]

        transaction = CallbackReconciler.reconcile(make_callback(items=items))

        assert transaction.payer_phone == '254712345678'

    def test_confirmed_amount_overwrites_requested(self, session, sample_transaction, make_callback):
        transaction = CallbackReconciler.reconcile(make_callback(items=[{'Name': 'Amount', 'Value': 49}]))

        assert transaction.amount == Decimal('49')

    def test_duplicate_delivery_is_idempotent(self, session, make_callback, success_items):
        payload = make_callback(items=success_items)

        first = CallbackReconciler.reconcile(payload).to_dict()
        second = CallbackReconciler.reconcile(payload).to_dict()

        assert Transaction.query.count() == 1
        first.pop('updated_at')
        second.pop('updated_at')
        assert first == second

    def test_conflicting_redelivery_overwrites_by_latest(self, session, make_callback, success_items):
        CallbackReconciler.reconcile(make_callback(items=success_items))
        later = make_callback(result_code=1, result_desc='Insufficient funds')

        transaction = CallbackReconciler.reconcile(later)

        assert transaction.status == TransactionStatus.FAILED
        assert transaction.raw_callback_payload == later

    def test_missing_metadata_items_use_defaults(self, session, make_callback):
        transaction = CallbackReconciler.reconcile(make_callback(items=[{'Name': 'Amount', 'Value': 10}]))

        assert transaction.amount == Decimal('10')
        assert transaction.receipt_number == ''
        assert transaction.transaction_timestamp == ''
        assert transaction.payer_phone == ''

    def test_unparsable_amount_defaults_to_zero(self, session, make_callback):
        transaction = CallbackReconciler.reconcile(make_callback(items=[{'Name': 'Amount', 'Value': 'fifty'}]))

        assert transaction.amount == 0

    def test_free_text_is_escaped(self, session, make_callback):
        items = [{'Name': 'MpesaReceiptNumber', 'Value': '<script>&"\''}]

        transaction = CallbackReconciler.reconcile(make_callback(result_desc='<script>&"\'', items=items))

        assert transaction.result_description == '&lt;script&gt;&amp;&quot;&apos;'
        assert transaction.receipt_number == '&lt;script&gt;&amp;&quot;&apos;'

    def test_malformed_callback_touches_nothing(self, session, sample_transaction):
        with pytest.raises(MalformedCallbackError):
            CallbackReconciler.reconcile({'Body': {'stkCallback': {'ResultCode': 0}}})

        transaction = Transaction.query.one()
        assert transaction.status == TransactionStatus.PENDING
        assert transaction.raw_callback_payload is None

    def test_missing_merchant_id_keeps_stored_one(self, session, sample_transaction):
        payload = {'Body': {'stkCallback': {
            'CheckoutRequestID': 'ws_CO_ABC123',
            'ResultCode': 1032,
            'ResultDesc': 'Request cancelled by user',
        }}}

        transaction = CallbackReconciler.reconcile(payload)

        assert transaction.status == TransactionStatus.FAILED
        assert transaction.merchant_request_id == 'mrq-001'

    def test_reported_merchant_id_overwrites(self, session, sample_transaction, make_callback):
        transaction = CallbackReconciler.reconcile(make_callback(merchant_request_id='mrq-002'))

        assert transaction.merchant_request_id == 'mrq-002'

    def test_missing_merchant_id_on_new_record_is_empty(self, session):
        payload = {'Body': {'stkCallback': {'CheckoutRequestID': 'ws_CO_NEW', 'ResultCode': 1}}}

        assert CallbackReconciler.reconcile(payload).merchant_request_id == ''

    def test_unnamed_item_does_not_block_outcome(self, session, sample_transaction, make_callback):
        items = [{'Name': 'Amount', 'Value': 50}, {'Value': 'orphan'}, {'Name': 'MpesaReceiptNumber', 'Value': 'R1'}]

        transaction = CallbackReconciler.reconcile(make_callback(items=items))

        assert transaction.status == TransactionStatus.SUCCEEDED
        assert transaction.receipt_number == 'R1'

    def test_unusable_callback_phone_is_not_stored(self, session, make_callback):
        items = [{'Name': 'PhoneNumber', 'Value': '<script>' * 10}]

        transaction = CallbackReconciler.reconcile(make_callback(checkout_request_id='ws_CO_P', items=items))

        assert transaction.payer_phone == ''
        assert transaction.recipient_phone == ''

    def test_out_of_range_amount_defaults_to_zero(self, session, make_callback):
        transaction = CallbackReconciler.reconcile(make_callback(items=[{'Name': 'Amount', 'Value': 10 ** 14}]))

        assert transaction.amount == 0

    def test_long_escaped_receipt_is_stored_whole(self, session, make_callback):
        receipt = '&' * 200
        transaction = CallbackReconciler.reconcile(make_callback(items=[{'Name': 'MpesaReceiptNumber', 'Value': receipt}]))

        assert transaction.receipt_number == '&amp;' * 200
        assert Transaction.__table__.c.receipt_number.type.length is None
        assert Transaction.__table__.c.transaction_timestamp.type.length is None
        assert Transaction.__table__.c.merchant_request_id.type.length is None
