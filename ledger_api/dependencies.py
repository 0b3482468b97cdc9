"""
FastAPI dependencies for authentication and engine construction.

Dependency chain:

  get_current_owner_id (JWT -> owner UUID)
  get_transaction_engine (request session -> repository -> TransactionEngine)

The auth service issues the token; this API only verifies it and reads the
owner id from the "sub" claim. There is no user table here: the owner id is
an opaque identifier every query is scoped by.
"""

import uuid

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_api.database import get_db
from ledger_api.exceptions import InvalidTokenError
from ledger_api.repositories.transaction_repository import SqlAlchemyTransactionRepository
from ledger_api.security import decode_access_token
from ledger_api.services.transaction_service import TransactionEngine
from ledger_api.services.validation import parse_identifier


# auto_error=False so a missing header produces our own 401 envelope
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_current_owner_id(
    token: str | None = Depends(oauth2_scheme),
) -> uuid.UUID:
    """
    Verify the bearer token and return the owner id it was issued for.

    Raises:
        InvalidTokenError (401): Missing, expired or tampered token.
        InvalidIdFormatError (400): The "sub" claim is not a UUID.
    """
    if not token:
        raise InvalidTokenError("No token provided")

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise InvalidTokenError()

    subject = payload.get("sub")
    if subject is None:
        raise InvalidTokenError()

    return parse_identifier(subject, "user id")


async def get_transaction_engine(
    db: AsyncSession = Depends(get_db),
) -> TransactionEngine:
    """Build the engine around this request's session."""
    return TransactionEngine(SqlAlchemyTransactionRepository(db))
