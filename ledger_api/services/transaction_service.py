"""
Transaction service — the recurring-transaction engine.

Everything the ledger does to transactions goes through TransactionEngine:
  - Creating standalone transactions and recurring series
  - Updating one transaction, or a series from a given occurrence onwards
  - Deleting one transaction, or a series from a given occurrence onwards
  - Listing an owner's transactions with amounts decrypted

Series:
  A recurring create expands (date, recurrence_end_date, recurrence_type)
  into occurrence dates and writes one record per date. All records share a
  fresh recurrence_id; only the first (earliest) has
  is_original_recurrence=True. The whole batch is one insert_many call inside
  the request's unit of work.

Series-wide updates preserve spacing:
  With propagate_to_series, every record of the series whose date is on or
  after the target's date receives the new description / amount / category.
  A new date is applied ONLY to the earliest of those records; the others
  keep their dates. Renaming or repricing the rest of a series therefore
  never collapses its occurrences onto one day.

Series-wide deletes remove the target and every later occurrence. Earlier
occurrences (the past) are kept.

Ownership:
  Every read and write is scoped by owner_id. A transaction owned by someone
  else is reported exactly like a missing one (TransactionNotFoundError).

Amounts:
  Encrypted with the field cipher before they reach the repository and
  decrypted on every path that returns data. A stored amount that cannot be
  decrypted is shown as 0 rather than failing the whole response.

Known race:
  Two concurrent series updates are not fenced against each other; the last
  write wins per record.

Date order after a shift:
  A series update may move the earliest record past later occurrences
  (Feb 15 -> Mar 20 with Mar 15 untouched). Order within the series is not
  re-checked afterwards, and is_original_recurrence is not reassigned.
"""

import enum
import uuid
from dataclasses import dataclass

import structlog

from ledger_api.dates import month_range, now, to_canonical_utc, year_range
from ledger_api.exceptions import CategoryNotFoundError, TransactionNotFoundError
from ledger_api.models.category import Category
from ledger_api.models.transaction import Transaction
from ledger_api.repositories.transaction_repository import TransactionRepository
from ledger_api.schemas.transaction import TransactionCreateRequest, TransactionPatchRequest
from ledger_api.security import decrypt_number, encrypt_number
from ledger_api.services.recurrence import generate_occurrences, parse_recurrence_type
from ledger_api.services.validation import parse_identifier, validate_transaction_data

log = structlog.get_logger(__name__)


class RecurrenceState(str, enum.Enum):
    """Where a transaction sits relative to recurrence. Fixed at creation."""
    STANDALONE = "standalone"
    SERIES_ORIGINAL = "series_original"
    SERIES_MEMBER = "series_member"


def recurrence_state(transaction: Transaction) -> RecurrenceState:
    if transaction.recurrence_id is None:
        return RecurrenceState.STANDALONE
    if transaction.is_original_recurrence:
        return RecurrenceState.SERIES_ORIGINAL
    return RecurrenceState.SERIES_MEMBER


@dataclass(frozen=True)
class TransactionView:
    """A transaction as callers see it: plaintext amount, category joined."""
    id: uuid.UUID
    owner_id: uuid.UUID
    date: str
    description: str
    amount: float
    category_id: uuid.UUID
    category_name: str | None
    category_color: str | None
    is_recurrent: bool
    recurrence_type: str | None
    recurrence_end_date: str | None
    recurrence_id: uuid.UUID | None
    is_original_recurrence: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, txn: Transaction, amount: float | None = None) -> "TransactionView":
        """
        Build a view from a stored record.

        Args:
            txn: The record; its category relationship must already be loaded.
            amount: The plaintext amount when the caller already has it
                (fresh writes). Otherwise the stored ciphertext is decrypted.
        """
        category = txn.category
        return cls(
            id=txn.id,
            owner_id=txn.owner_id,
            date=txn.date,
            description=txn.description,
            amount=float(amount) if amount is not None else decrypt_number(txn.amount),
            category_id=txn.category_id,
            category_name=category.name if category is not None else None,
            category_color=category.color if category is not None else None,
            is_recurrent=txn.is_recurrent,
            recurrence_type=txn.recurrence_type,
            recurrence_end_date=txn.recurrence_end_date,
            recurrence_id=txn.recurrence_id,
            is_original_recurrence=txn.is_original_recurrence,
            created_at=txn.created_at,
            updated_at=txn.updated_at,
        )


class TransactionEngine:
    """
    Create / update / delete / list transactions for one owner at a time.

    Args:
        repository: Persistence port. Built per request around the request's
            database session (see ledger_api.dependencies).
    """

    def __init__(self, repository: TransactionRepository):
        self._repository = repository

    async def _require_category(self, category_id: uuid.UUID, owner_id: uuid.UUID) -> Category:
        category = await self._repository.find_category(category_id, owner_id)
        if category is None:
            raise CategoryNotFoundError(category_id)
        return category

    async def _require_transaction(
        self, transaction_id: uuid.UUID, owner_id: uuid.UUID
    ) -> Transaction:
        txn = await self._repository.find_one(transaction_id, owner_id)
        if txn is None:
            raise TransactionNotFoundError(transaction_id)
        return txn

    # -----------------------------------------------------------------------
    # Create
    # -----------------------------------------------------------------------

    async def create(
        self,
        owner_id: uuid.UUID,
        payload: TransactionCreateRequest,
    ) -> list[TransactionView]:
        """
        Create a standalone transaction or a whole recurring series.

        Returns:
            Every record written, oldest first, amounts in plaintext. One
            element for a standalone transaction.

        Raises:
            TransactionValidationError subclasses, InvalidIdFormatError:
                The payload is rejected; nothing is written.
            CategoryNotFoundError: The category does not belong to the owner.
        """
        validate_transaction_data(payload.model_dump())

        category_id = parse_identifier(payload.category_id, "category_id")
        category = await self._require_category(category_id, owner_id)

        date = to_canonical_utc(payload.date)
        description = payload.description.strip()
        encrypted_amount = encrypt_number(payload.amount)
        stamp = now()

        if not payload.is_recurrent:
            txn = Transaction(
                owner_id=owner_id,
                date=date,
                description=description,
                amount=encrypted_amount,
                category=category,
                is_recurrent=False,
                is_original_recurrence=False,
                created_at=stamp,
                updated_at=stamp,
            )
            await self._repository.insert_one(txn)
            log.info("transaction_created", transaction_id=str(txn.id), owner_id=str(owner_id))
            return [TransactionView.from_record(txn, amount=payload.amount)]

        recurrence_type = parse_recurrence_type(payload.recurrence_type)
        end_date = to_canonical_utc(payload.recurrence_end_date)
        occurrences = generate_occurrences(date, end_date, recurrence_type)
        recurrence_id = uuid.uuid4()

        series = [
            Transaction(
                owner_id=owner_id,
                date=occurrence,
                description=description,
                amount=encrypted_amount,
                category=category,
                is_recurrent=True,
                recurrence_type=recurrence_type.value,
                recurrence_end_date=end_date,
                recurrence_id=recurrence_id,
                is_original_recurrence=index == 0,
                created_at=stamp,
                updated_at=stamp,
            )
            for index, occurrence in enumerate(occurrences)
        ]
        await self._repository.insert_many(series)

        log.info(
            "recurring_series_created",
            recurrence_id=str(recurrence_id),
            recurrence_type=recurrence_type.value,
            occurrences=len(series),
            owner_id=str(owner_id),
        )
        return [TransactionView.from_record(txn, amount=payload.amount) for txn in series]

    # -----------------------------------------------------------------------
    # Update
    # -----------------------------------------------------------------------

    async def update(
        self,
        owner_id: uuid.UUID,
        transaction_id: uuid.UUID,
        patch: TransactionPatchRequest,
        propagate_to_series: bool = False,
    ) -> list[TransactionView]:
        """
        Update one transaction, or its series from this occurrence onwards.

        Args:
            owner_id: The authenticated owner.
            transaction_id: The target transaction.
            patch: Fields to change. Only fields explicitly sent are applied.
            propagate_to_series: Apply to every same-series record dated on or
                after the target. Ignored for standalone transactions.

        Returns:
            The updated records, oldest first.

        Raises:
            TransactionValidationError subclasses, InvalidIdFormatError
            TransactionNotFoundError: Missing or owned by someone else.
            CategoryNotFoundError: The new category does not resolve.
        """
        changes = patch.model_dump(exclude_unset=True)
        validate_transaction_data(changes)

        target = await self._require_transaction(transaction_id, owner_id)

        values: dict = {}
        if "description" in changes:
            values["description"] = changes["description"].strip()
        if "amount" in changes:
            values["amount"] = encrypt_number(changes["amount"])
        if "category_id" in changes:
            category_id = parse_identifier(changes["category_id"], "category_id")
            values["category"] = await self._require_category(category_id, owner_id)
        new_date = to_canonical_utc(changes["date"]) if "date" in changes else None

        propagate = (
            propagate_to_series
            and recurrence_state(target) is not RecurrenceState.STANDALONE
        )

        if not propagate:
            row_values = dict(values, updated_at=now())
            if new_date is not None:
                row_values["date"] = new_date
            await self._repository.update_one(target, row_values)
            log.info("transaction_updated", transaction_id=str(target.id), fields=sorted(changes))
            return [TransactionView.from_record(target)]

        from_date = target.date
        series = await self._repository.find_series_from(
            target.recurrence_id, owner_id, from_date
        )
        for index, txn in enumerate(series):
            row_values = dict(values, updated_at=now())
            # Only the earliest record moves; the rest keep their spacing
            if index == 0 and new_date is not None:
                row_values["date"] = new_date
            await self._repository.update_one(txn, row_values)

        log.info(
            "series_updated",
            recurrence_id=str(target.recurrence_id),
            from_date=from_date,
            modified=len(series),
            fields=sorted(changes),
        )
        return [TransactionView.from_record(txn) for txn in series]

    # -----------------------------------------------------------------------
    # Delete
    # -----------------------------------------------------------------------

    async def delete(
        self,
        owner_id: uuid.UUID,
        transaction_id: uuid.UUID,
        delete_all: bool = False,
    ) -> int:
        """
        Delete one transaction, or it and every later occurrence of its series.

        Returns:
            The number of records deleted.

        Raises:
            TransactionNotFoundError: Missing or owned by someone else.
        """
        target = await self._require_transaction(transaction_id, owner_id)

        if delete_all and recurrence_state(target) is not RecurrenceState.STANDALONE:
            deleted = await self._repository.delete_many(
                owner_id,
                recurrence_id=target.recurrence_id,
                date_from=target.date,
            )
            log.info(
                "series_deleted",
                recurrence_id=str(target.recurrence_id),
                from_date=target.date,
                deleted=deleted,
            )
            return deleted

        deleted = await self._repository.delete_many(owner_id, transaction_id=target.id)
        log.info("transaction_deleted", transaction_id=str(target.id))
        return deleted

    # -----------------------------------------------------------------------
    # Listings (newest first, amounts decrypted)
    # -----------------------------------------------------------------------

    async def list_all(self, owner_id: uuid.UUID) -> list[TransactionView]:
        records = await self._repository.find(owner_id)
        return [TransactionView.from_record(txn) for txn in records]

    async def list_by_year(self, owner_id: uuid.UUID, year: int) -> list[TransactionView]:
        period = year_range(year)
        records = await self._repository.find(owner_id, period.start, period.end)
        return [TransactionView.from_record(txn) for txn in records]

    async def list_by_month(
        self, owner_id: uuid.UUID, year: int, month: int
    ) -> list[TransactionView]:
        period = month_range(year, month)
        records = await self._repository.find(owner_id, period.start, period.end)
        return [TransactionView.from_record(txn) for txn in records]
