"""
Result-to-response conversion shared by the API routes.
"""

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from expense_claims.schemas.results import OperationResult
from expense_claims.utils.errors import ClaimsError


def error_response(status_code: int, error: dict[str, Any]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"success": False, "error": error}),
    )


def claims_error_response(error: ClaimsError) -> JSONResponse:
    return error_response(error.http_status, error.to_dict())


def unwrap_result(result: OperationResult) -> Any:
    """Return the payload of a successful result, or the error response."""
    if result.success:
        return result.data
    return error_response(result.http_status, result.error.model_dump(exclude_none=True))
