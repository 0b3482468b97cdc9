"""
Transaction persistence port and its SQLAlchemy adapter.

The engine in transaction_service.py never talks to the database directly.
It is handed a TransactionRepository when it is constructed, which keeps the
business rules testable against any storage and makes the data access
surface explicit:

    find_one          one transaction by (id, owner)
    find              an owner's transactions, optionally within a date range
    find_series_from  a series from a given date onwards, ascending
    insert_one        persist one new transaction
    insert_many       persist a batch in a single call
    update_one        apply field changes to one loaded transaction
    delete_many       delete by filter, returning the count
    find_category     resolve a category reference for an owner

Every method is scoped by owner. Failures from the driver are logged with
context and re-raised as StorageError.
"""

import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, selectinload

from ledger_api.exceptions import StorageError
from ledger_api.models.category import Category
from ledger_api.models.transaction import Transaction

log = structlog.get_logger(__name__)


class TransactionRepository(ABC):
    """
    Abstract persistence port for transactions.

    Any storage implementation must provide these operations. insert_many
    must be all-or-nothing from the caller's point of view.
    """

    @abstractmethod
    async def find_one(
        self, transaction_id: uuid.UUID, owner_id: uuid.UUID
    ) -> Transaction | None:
        """Return the transaction if it exists AND belongs to owner_id."""

    @abstractmethod
    async def find(
        self,
        owner_id: uuid.UUID,
        date_from: str | None = None,
        date_to: str | None = None,
    ) -> list[Transaction]:
        """
        Return the owner's transactions, newest date first.

        Both bounds are inclusive canonical timestamps. Transactions whose
        category no longer resolves are left out.
        """

    @abstractmethod
    async def find_series_from(
        self,
        recurrence_id: uuid.UUID,
        owner_id: uuid.UUID,
        date_from: str,
    ) -> list[Transaction]:
        """Return series members with date >= date_from, oldest first."""

    @abstractmethod
    async def insert_one(self, transaction: Transaction) -> Transaction:
        pass

    @abstractmethod
    async def insert_many(self, transactions: Sequence[Transaction]) -> list[Transaction]:
        pass

    @abstractmethod
    async def update_one(self, transaction: Transaction, values: dict[str, Any]) -> Transaction:
        pass

    @abstractmethod
    async def delete_many(
        self,
        owner_id: uuid.UUID,
        transaction_id: uuid.UUID | None = None,
        recurrence_id: uuid.UUID | None = None,
        date_from: str | None = None,
    ) -> int:
        """
        Delete the owner's transactions matching every filter given.

        At least one of transaction_id / recurrence_id must be provided.
        """

    @abstractmethod
    async def find_category(
        self, category_id: uuid.UUID, owner_id: uuid.UUID
    ) -> Category | None:
        pass


@contextmanager
def _storage_errors(operation: str, **context: Any) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        log.error(
            "storage_error",
            operation=operation,
            error_type=type(exc).__name__,
            **{key: str(value) for key, value in context.items()},
        )
        raise StorageError() from exc


class SqlAlchemyTransactionRepository(TransactionRepository):
    """TransactionRepository backed by an AsyncSession (one per request)."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def find_one(
        self, transaction_id: uuid.UUID, owner_id: uuid.UUID
    ) -> Transaction | None:
        with _storage_errors("find_one", transaction_id=transaction_id):
            result = await self._db.execute(
                select(Transaction)
                .where(Transaction.id == transaction_id)
                .where(Transaction.owner_id == owner_id)
                .options(selectinload(Transaction.category))
            )
            return result.scalar_one_or_none()

    async def find(
        self,
        owner_id: uuid.UUID,
        date_from: str | None = None,
        date_to: str | None = None,
    ) -> list[Transaction]:
        # Inner join: a transaction whose category is gone is not listed
        query = (
            select(Transaction)
            .join(Transaction.category)
            .options(contains_eager(Transaction.category))
            .where(Transaction.owner_id == owner_id)
            .order_by(Transaction.date.desc())
        )
        if date_from is not None:
            query = query.where(Transaction.date >= date_from)
        if date_to is not None:
            query = query.where(Transaction.date <= date_to)

        with _storage_errors("find", date_from=date_from, date_to=date_to):
            result = await self._db.execute(query)
            return list(result.scalars().all())

    async def find_series_from(
        self,
        recurrence_id: uuid.UUID,
        owner_id: uuid.UUID,
        date_from: str,
    ) -> list[Transaction]:
        with _storage_errors("find_series_from", recurrence_id=recurrence_id):
            result = await self._db.execute(
                select(Transaction)
                .where(Transaction.recurrence_id == recurrence_id)
                .where(Transaction.owner_id == owner_id)
                .where(Transaction.date >= date_from)
                .order_by(Transaction.date.asc())
                .options(selectinload(Transaction.category))
            )
            return list(result.scalars().all())

    async def insert_one(self, transaction: Transaction) -> Transaction:
        with _storage_errors("insert_one"):
            self._db.add(transaction)
            await self._db.flush()
        return transaction

    async def insert_many(self, transactions: Sequence[Transaction]) -> list[Transaction]:
        # One flush inside the request's unit of work: a failure rolls back
        # the whole batch with the session
        with _storage_errors("insert_many", count=len(transactions)):
            self._db.add_all(transactions)
            await self._db.flush()
        return list(transactions)

    async def update_one(self, transaction: Transaction, values: dict[str, Any]) -> Transaction:
        with _storage_errors("update_one", transaction_id=transaction.id):
            for field, value in values.items():
                setattr(transaction, field, value)
            await self._db.flush()
        return transaction

    async def delete_many(
        self,
        owner_id: uuid.UUID,
        transaction_id: uuid.UUID | None = None,
        recurrence_id: uuid.UUID | None = None,
        date_from: str | None = None,
    ) -> int:
        if transaction_id is None and recurrence_id is None:
            raise ValueError("delete_many needs transaction_id or recurrence_id")

        statement = delete(Transaction).where(Transaction.owner_id == owner_id)
        if transaction_id is not None:
            statement = statement.where(Transaction.id == transaction_id)
        if recurrence_id is not None:
            statement = statement.where(Transaction.recurrence_id == recurrence_id)
        if date_from is not None:
            statement = statement.where(Transaction.date >= date_from)

        with _storage_errors("delete_many", transaction_id=transaction_id, recurrence_id=recurrence_id):
            result = await self._db.execute(
                statement.execution_options(synchronize_session="evaluate")
            )
            return result.rowcount

    async def find_category(
        self, category_id: uuid.UUID, owner_id: uuid.UUID
    ) -> Category | None:
        with _storage_errors("find_category", category_id=category_id):
            result = await self._db.execute(
                select(Category)
                .where(Category.id == category_id)
                .where(Category.owner_id == owner_id)
            )
            return result.scalar_one_or_none()
