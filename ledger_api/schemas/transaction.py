"""
Pydantic schemas for the transaction endpoints.

Field names are camelCase on the wire (categoryId, isRecurrent, ...) and
snake_case in Python; both spellings are accepted on input.

Dates are canonical UTC strings: YYYY-MM-DDTHH:mm:ss.sssZ. Amounts are
signed plain numbers here; they only exist encrypted in the database.
"""

import uuid

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt
from pydantic.alias_generators import to_camel

from ledger_api.services.recurrence import RecurrenceType


class TransactionCreateRequest(BaseModel):
    """Request body for POST /api/transactions/create."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    date: str
    description: str
    amount: StrictInt | StrictFloat
    # Checked by the validator so a bad id reports INVALID_ID_FORMAT
    category_id: str
    is_recurrent: bool = False
    recurrence_type: str | None = None
    recurrence_end_date: str | None = None


class TransactionPatchRequest(BaseModel):
    """
    Request body for PUT /api/transactions/{id}.

    Only these four fields can change after creation. Unknown keys are
    rejected instead of being written through to the record.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    description: str | None = None
    amount: StrictInt | StrictFloat | None = None
    date: str | None = None
    category_id: str | None = None


class TransactionResponse(BaseModel):
    """Public representation of a transaction, amount decrypted."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: uuid.UUID
    owner_id: uuid.UUID
    date: str
    description: str
    amount: float
    category_id: uuid.UUID
    category_name: str | None = None
    category_color: str | None = None
    is_recurrent: bool
    recurrence_type: RecurrenceType | None = None
    recurrence_end_date: str | None = None
    recurrence_id: uuid.UUID | None = None
    is_original_recurrence: bool
    created_at: str
    updated_at: str


class TransactionCreateResult(BaseModel):
    """Payload of a create response. Both standalone and series creates
    return every record written."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    inserted_count: int
    transactions: list[TransactionResponse]


class TransactionUpdateResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    modified_count: int
    transactions: list[TransactionResponse]


class TransactionDeleteResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    deleted_count: int
