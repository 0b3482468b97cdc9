"""
Transactions router — thin HTTP layer over the transaction engine.

Endpoints (all scoped to the authenticated owner):
  GET    /api/transactions/all              — Every transaction, newest first
  GET    /api/transactions/{year}           — Transactions dated in a year
  GET    /api/transactions/{year}/{month}   — Transactions dated in a month
  POST   /api/transactions/create           — Create one, or a recurring series
  PUT    /api/transactions/{id}?updateAll=  — Update one, or the rest of its series
  DELETE /api/transactions/{id}?deleteAll=  — Delete one, or the rest of its series

Every response uses the envelope {success, message, data, error, statusCode}.
Path identifiers are plain strings here and parsed by the validator so that a
malformed id yields 400 INVALID_ID_FORMAT.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status

from ledger_api.dependencies import get_current_owner_id, get_transaction_engine
from ledger_api.schemas.envelope import ApiResponse
from ledger_api.schemas.transaction import (
    TransactionCreateRequest,
    TransactionCreateResult,
    TransactionDeleteResult,
    TransactionPatchRequest,
    TransactionResponse,
    TransactionUpdateResult,
)
from ledger_api.services.transaction_service import TransactionEngine, TransactionView
from ledger_api.services.validation import parse_identifier

router = APIRouter()


def _responses(views: list[TransactionView]) -> list[TransactionResponse]:
    return [TransactionResponse.model_validate(view) for view in views]


@router.get(
    "/all",
    response_model=ApiResponse[list[TransactionResponse]],
    summary="List all transactions",
)
async def list_all_transactions(
    owner_id: uuid.UUID = Depends(get_current_owner_id),
    engine: TransactionEngine = Depends(get_transaction_engine),
):
    """All of the owner's transactions, newest first, amounts decrypted."""
    views = await engine.list_all(owner_id)
    return ApiResponse(data=_responses(views))


@router.get(
    "/{year}",
    response_model=ApiResponse[list[TransactionResponse]],
    summary="List transactions for a year",
)
async def list_transactions_by_year(
    year: int,
    owner_id: uuid.UUID = Depends(get_current_owner_id),
    engine: TransactionEngine = Depends(get_transaction_engine),
):
    views = await engine.list_by_year(owner_id, year)
    return ApiResponse(data=_responses(views))


@router.get(
    "/{year}/{month}",
    response_model=ApiResponse[list[TransactionResponse]],
    summary="List transactions for a month",
)
async def list_transactions_by_month(
    year: int,
    month: int,
    owner_id: uuid.UUID = Depends(get_current_owner_id),
    engine: TransactionEngine = Depends(get_transaction_engine),
):
    """
    Transactions dated between the first and the last instant (UTC) of the
    month. The front end converts the returned UTC dates to local time.
    """
    views = await engine.list_by_month(owner_id, year, month)
    return ApiResponse(data=_responses(views))


@router.post(
    "/create",
    response_model=ApiResponse[TransactionCreateResult],
    status_code=status.HTTP_201_CREATED,
    summary="Create a transaction or a recurring series",
)
async def create_transaction(
    request: TransactionCreateRequest,
    owner_id: uuid.UUID = Depends(get_current_owner_id),
    engine: TransactionEngine = Depends(get_transaction_engine),
):
    """
    Create a transaction.

    - **isRecurrent = false**: one record is written
    - **isRecurrent = true**: one record per occurrence from **date** to
      **recurrenceEndDate** (weekly, monthly or yearly), all sharing one
      **recurrenceId**; only the first is flagged **isOriginalRecurrence**

    Dates must be UTC in the exact form `YYYY-MM-DDTHH:mm:ss.sssZ`.
    """
    views = await engine.create(owner_id, request)
    message = (
        "Recurrent transactions created successfully"
        if request.is_recurrent
        else "Transaction created successfully"
    )
    return ApiResponse(
        message=message,
        data=TransactionCreateResult(
            inserted_count=len(views),
            transactions=_responses(views),
        ),
        status_code=status.HTTP_201_CREATED,
    )


@router.put(
    "/{transaction_id}",
    response_model=ApiResponse[TransactionUpdateResult],
    summary="Update a transaction (optionally the rest of its series)",
)
async def update_transaction(
    transaction_id: str,
    request: TransactionPatchRequest,
    update_all: bool = Query(False, alias="updateAll"),
    owner_id: uuid.UUID = Depends(get_current_owner_id),
    engine: TransactionEngine = Depends(get_transaction_engine),
):
    """
    Update description, amount, date and/or category.

    With **updateAll=true** on a recurring transaction the change is applied
    to this occurrence and every later one. A new date only moves the
    earliest of them; the others keep their dates.
    """
    views = await engine.update(
        owner_id=owner_id,
        transaction_id=parse_identifier(transaction_id, "transaction id"),
        patch=request,
        propagate_to_series=update_all,
    )
    return ApiResponse(
        message="Transaction(s) updated successfully",
        data=TransactionUpdateResult(
            modified_count=len(views),
            transactions=_responses(views),
        ),
    )


@router.delete(
    "/{transaction_id}",
    response_model=ApiResponse[TransactionDeleteResult],
    summary="Delete a transaction (optionally the rest of its series)",
)
async def delete_transaction(
    transaction_id: str,
    delete_all: bool = Query(False, alias="deleteAll"),
    owner_id: uuid.UUID = Depends(get_current_owner_id),
    engine: TransactionEngine = Depends(get_transaction_engine),
):
    """
    Delete a transaction. With **deleteAll=true** on a recurring transaction,
    this occurrence and every later one are deleted; earlier ones stay.
    """
    deleted = await engine.delete(
        owner_id=owner_id,
        transaction_id=parse_identifier(transaction_id, "transaction id"),
        delete_all=delete_all,
    )
    return ApiResponse(
        message="Transaction(s) deleted successfully",
        data=TransactionDeleteResult(deleted_count=deleted),
    )
