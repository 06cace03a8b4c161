"""
Claim Engine Errors
Stable error taxonomy shared by the repository, the query service and the API.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer answers with. The result boundary in ``services.claims_service`` turns
these into ``OperationResult`` failures instead of letting them escape.
"""

from typing import Any

from fastapi import status


class ClaimsError(Exception):
    """Base class for every expected claim-engine failure."""

    code: str = "claims_error"
    http_status: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Claim operation failed"

    def __init__(self, message: str | None = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(ClaimsError):
    """Raised when a claim, item or referenced row does not exist"""

    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ForbiddenError(ClaimsError):
    """Raised when the caller is not allowed to perform the operation"""

    code = "forbidden"
    http_status = status.HTTP_403_FORBIDDEN
    default_message = "Permission denied"


class IllegalStateError(ClaimsError):
    """Raised when the operation is not valid for the claim's current status"""

    code = "illegal_state"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Operation not allowed in the current claim status"


class IllegalTransitionError(ClaimsError):
    """Raised when a status change is not permitted"""

    code = "illegal_transition"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Status transition not allowed"


class UnknownReferenceCodeError(ClaimsError):
    """Raised when an item-type or currency code has no mapping"""

    code = "unknown_reference_code"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Unknown reference code"


class InvalidDateError(ClaimsError):
    """Raised when an item date cannot be parsed or is out of range"""

    code = "invalid_date"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid date"


class ValidationError(ClaimsError):
    """Raised when input values (amounts, rates, statuses) are malformed"""

    code = "validation_error"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Validation error"


class AttachmentUploadError(ClaimsError):
    """Raised when a new attachment could not be stored"""

    code = "attachment_upload_failed"
    http_status = status.HTTP_502_BAD_GATEWAY
    default_message = "Attachment upload failed"


class AuthenticationError(ClaimsError):
    """Raised when the caller's identity cannot be established"""

    code = "unauthenticated"
    http_status = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"
