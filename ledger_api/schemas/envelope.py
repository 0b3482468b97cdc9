"""
The JSON envelope every endpoint responds with.

    {"success": true, "message": "...", "data": {...}, "statusCode": 200}
    {"success": false, "message": "...", "error": "ERROR_CODE", "statusCode": 404}

Error envelopes are produced by the handlers in ledger_api.exceptions; this
model describes the success side for response_model declarations.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    message: str | None = None
    data: DataT | None = None
    error: str | None = None
    status_code: int = 200
