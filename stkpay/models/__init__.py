from stkpay.models.transaction import Transaction, TransactionStatus

__all__ = ['Transaction', 'TransactionStatus']
