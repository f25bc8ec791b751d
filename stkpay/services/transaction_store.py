"""
Transaction Store
Persistence for Transaction records keyed by CheckoutRequestID
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import case, select, update
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from stkpay.errors import ConflictError, PersistenceError
from stkpay.extensions import db
from stkpay.models import Transaction


class TransactionStore:
    """Create, upsert and query Transaction records"""

    # Columns that only the first insert may set
    IMMUTABLE_FIELDS = ('id', 'checkout_request_id', 'created_at')

    @staticmethod
    def create(checkout_request_id: str, **fields: Any) -> Transaction:
        """
        Insert a new pending transaction

        Raises:
            ConflictError: If a record with this checkout_request_id exists
            PersistenceError: If the database is unavailable
        """
        transaction = Transaction(checkout_request_id=checkout_request_id, **fields)
        db.session.add(transaction)

        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise ConflictError(
                f'Transaction {checkout_request_id} already exists'
            ) from e
        except SQLAlchemyError as e:
            db.session.rollback()
            raise PersistenceError(f'Failed to create transaction: {e}') from e

        return transaction

    @staticmethod
    def upsert_by_checkout_id(
            checkout_request_id: str,
            patch: Dict[str, Any],
            insert_defaults: Optional[Dict[str, Any]] = None
    ) -> Transaction:
        """
        Insert or update a transaction in a single statement

        Args:
            checkout_request_id: Correlation key
            patch: Fields written on insert and on update
            insert_defaults: Fields written only when the row is created

        Returns:
            The stored transaction
        """
        patch = {k: v for k, v in patch.items() if k not in TransactionStore.IMMUTABLE_FIELDS}
        values = {
            **(insert_defaults or {}),
            **patch,
            'checkout_request_id': checkout_request_id,
        }
        set_ = {**patch, 'updated_at': datetime.utcnow()}

        try:
            stmt = TransactionStore._upsert_statement(values, set_)
            db.session.execute(stmt)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise PersistenceError(f'Failed to upsert transaction {checkout_request_id}: {e}') from e

        return TransactionStore.get(checkout_request_id)

    @staticmethod
    def backfill_request_fields(
            checkout_request_id: str,
            merchant_request_id: Optional[str],
            payer_phone: str,
            recipient_phone: Optional[str],
            amount: Any
    ) -> None:
        """
        Write the initiation request's fields onto a record a callback created first

        The requested amount is only used if the callback did not report one.
        """
        stmt = (
            update(Transaction)
            .where(Transaction.checkout_request_id == checkout_request_id)
            .values(
                merchant_request_id=merchant_request_id,
                payer_phone=payer_phone,
                recipient_phone=recipient_phone,
                amount=case((Transaction.amount == 0, amount), else_=Transaction.amount),
                updated_at=datetime.utcnow(),
            )
        )

        try:
            db.session.execute(stmt)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise PersistenceError(f'Failed to update transaction {checkout_request_id}: {e}') from e

    @staticmethod
    def get(checkout_request_id: str) -> Optional[Transaction]:
        """Get transaction by CheckoutRequestID"""
        try:
            return db.session.execute(
                select(Transaction)
                .filter_by(checkout_request_id=checkout_request_id)
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f'Failed to load transaction {checkout_request_id}: {e}') from e

    @staticmethod
    def list(limit: int = 100) -> List[Transaction]:
        """Most recent transactions, newest first"""
        try:
            return list(db.session.execute(
                select(Transaction)
                .order_by(Transaction.created_at.desc())
                .limit(limit)
            ).scalars())
        except SQLAlchemyError as e:
            raise PersistenceError(f'Failed to list transactions: {e}') from e

    @staticmethod
    def _upsert_statement(values: Dict[str, Any], set_: Dict[str, Any]):
        dialect = db.session.get_bind().dialect.name

        if dialect == 'postgresql':
            stmt = postgresql_insert(Transaction).values(**values)
            return stmt.on_conflict_do_update(index_elements=['checkout_request_id'], set_=set_)

        if dialect == 'sqlite':
            stmt = sqlite_insert(Transaction).values(**values)
            return stmt.on_conflict_do_update(index_elements=['checkout_request_id'], set_=set_)

        if dialect in ('mysql', 'mariadb'):
            stmt = mysql_insert(Transaction).values(**values)
            return stmt.on_duplicate_key_update(**set_)

        raise PersistenceError(f'Upsert is not supported for the {dialect} dialect')
