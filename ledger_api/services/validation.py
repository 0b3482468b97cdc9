"""
Transaction payload validation.

validate_transaction_data() checks a create payload or any subset of fields
sent on update. It works on a plain mapping with snake_case keys, so it can
be called on `model_dump(exclude_unset=True)` output as well as on raw data,
and raises the first failure it finds. Every rule is checked before anything
is written.

Rules:
  - amount: a real number (bool is rejected), finite
  - description: a string that is not blank after stripping
  - date / recurrence_end_date: canonical UTC format
  - is_recurrent: recurrence_type and recurrence_end_date both required,
    recurrence_type supported, recurrence_end_date strictly after date
  - category_id / owner_id: well-formed identifiers (UUID)
"""

import math
import uuid
from collections.abc import Mapping
from typing import Any

from ledger_api.dates import from_canonical_utc, is_canonical
from ledger_api.exceptions import (
    InvalidAmountError,
    InvalidDateFormatError,
    InvalidDateRangeError,
    InvalidDescriptionError,
    InvalidIdFormatError,
    InvalidRecurrenceDataError,
)
from ledger_api.services.recurrence import parse_recurrence_type


def parse_identifier(value: Any, field: str = "id") -> uuid.UUID:
    """
    Parse a UUID identifier coming from a path, token or body.

    Raises:
        InvalidIdFormatError: If the value is not a well-formed UUID.
    """
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        raise InvalidIdFormatError(field)
    try:
        return uuid.UUID(value)
    except ValueError:
        raise InvalidIdFormatError(field)


def _validate_amount(amount: Any) -> None:
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise InvalidAmountError()
    try:
        finite = math.isfinite(amount)
    except OverflowError:
        # int beyond float range
        finite = False
    if not finite:
        raise InvalidAmountError("Amount must be a finite number")


def _validate_recurrence(data: Mapping[str, Any]) -> None:
    recurrence_type = data.get("recurrence_type")
    end_date = data.get("recurrence_end_date")
    if not recurrence_type or not end_date:
        raise InvalidRecurrenceDataError()

    # InvalidRecurrenceTypeError is an InvalidRecurrenceDataError
    parse_recurrence_type(recurrence_type)

    start_date = data.get("date")
    if start_date is None:
        raise InvalidRecurrenceDataError("A start date is required for recurrent transactions")

    if from_canonical_utc(end_date) <= from_canonical_utc(start_date):
        raise InvalidDateRangeError()


def validate_transaction_data(data: Mapping[str, Any]) -> None:
    """
    Validate a transaction payload (or the subset of fields present).

    Raises:
        InvalidAmountError, InvalidDescriptionError, InvalidDateFormatError,
        InvalidRecurrenceDataError, InvalidDateRangeError, InvalidIdFormatError
    """
    if "amount" in data:
        _validate_amount(data["amount"])

    if "description" in data:
        description = data["description"]
        if not isinstance(description, str) or not description.strip():
            raise InvalidDescriptionError()

    if "date" in data and data["date"] is None:
        raise InvalidDateFormatError()
    for field in ("date", "recurrence_end_date"):
        value = data.get(field)
        if value is None:
            continue
        if not is_canonical(value):
            raise InvalidDateFormatError()
        # Right shape, impossible instant (e.g. month 13)
        from_canonical_utc(value)

    if data.get("is_recurrent"):
        _validate_recurrence(data)

    if "category_id" in data:
        parse_identifier(data["category_id"], "category_id")
    if "owner_id" in data:
        parse_identifier(data["owner_id"], "owner_id")
