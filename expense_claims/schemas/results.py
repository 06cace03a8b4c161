"""
Discriminated success/error result returned across the claims boundary.
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

from expense_claims.utils.errors import ClaimsError

T = TypeVar("T")


class ErrorInfo(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class OperationResult(BaseModel, Generic[T]):
    """
    Outcome of a claims operation.

    Exactly one of ``data`` (on success) or ``error`` (on failure) is set.
    ``http_status`` is what the API layer answers with.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[ErrorInfo] = None
    http_status: int = 200

    @classmethod
    def ok(cls, data: Any = None, http_status: int = 200) -> "OperationResult":
        return cls(success=True, data=data, http_status=http_status)

    @classmethod
    def fail(cls, error: ClaimsError) -> "OperationResult":
        return cls(
            success=False,
            error=ErrorInfo(**error.to_dict()),
            http_status=error.http_status,
        )

    @classmethod
    def internal_error(cls, message: str = "Unexpected error while processing the claim") -> "OperationResult":
        return cls(
            success=False,
            error=ErrorInfo(code="internal_error", message=message),
            http_status=500,
        )
