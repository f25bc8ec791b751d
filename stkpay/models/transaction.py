import uuid
from datetime import datetime
from enum import Enum

from stkpay.extensions import db


class TransactionStatus(str, Enum):
    PENDING = 'pending'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


class Transaction(db.Model):
    __tablename__ = 'transactions'

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    # Gateway correlation
    merchant_request_id = db.Column(db.Text)
    checkout_request_id = db.Column(db.String(255), unique=True, nullable=False, index=True)

    # Outcome, NULL while pending
    result_code = db.Column(db.Integer)
    result_description = db.Column(db.Text, nullable=False, default='')

    # Payment details
    amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    # Escaped callback text, unbounded
    receipt_number = db.Column(db.Text)
    transaction_timestamp = db.Column(db.Text)

    # Always a normalised MSISDN or empty
    payer_phone = db.Column(db.String(20), nullable=False, default='')
    recipient_phone = db.Column(db.String(20))

    # Verbatim callback body, replaced on each reconciliation
    raw_callback_payload = db.Column(db.JSON)

    # Timestamps
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def status(self) -> TransactionStatus:
        if self.result_code is None:
            return TransactionStatus.PENDING
        if self.result_code == 0:
            return TransactionStatus.SUCCEEDED
        return TransactionStatus.FAILED

    @property
    def is_resolved(self) -> bool:
        return self.result_code is not None

    def to_dict(self):
        return {
            'id': str(self.id),
            'merchant_request_id': self.merchant_request_id,
            'checkout_request_id': self.checkout_request_id,
            'result_code': self.result_code,
            'result_description': self.result_description,
            'status': self.status.value,
            'amount': float(self.amount) if self.amount is not None else None,
            'receipt_number': self.receipt_number,
            'transaction_timestamp': self.transaction_timestamp,
            'payer_phone': self.payer_phone,
            'recipient_phone': self.recipient_phone,
            'raw_callback_payload': self.raw_callback_payload,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Transaction {self.checkout_request_id} - {self.status.value}>'
