"""
Pydantic schemas for claim requests, responses and operation results.
"""

from expense_claims.schemas.claim import (
    AttachmentResponse,
    ClaimCreateRequest,
    ClaimDetail,
    ClaimItemDetail,
    ClaimItemResponse,
    ClaimListResponse,
    ClaimReportRequest,
    ClaimResponse,
    ClaimSummary,
    ClaimUpdateRequest,
    CreateClaimResponse,
    EmployeeIdentity,
    RawItem,
    RetainedAttachment,
    StatusUpdateRequest,
    UpdateClaimResponse,
)
from expense_claims.schemas.reference import CurrencyResponse, FormInitData, ItemTypeResponse
from expense_claims.schemas.results import ErrorInfo, OperationResult

__all__ = [
    "AttachmentResponse",
    "ClaimCreateRequest",
    "ClaimDetail",
    "ClaimItemDetail",
    "ClaimItemResponse",
    "ClaimListResponse",
    "ClaimReportRequest",
    "ClaimResponse",
    "ClaimSummary",
    "ClaimUpdateRequest",
    "CreateClaimResponse",
    "EmployeeIdentity",
    "RawItem",
    "RetainedAttachment",
    "StatusUpdateRequest",
    "UpdateClaimResponse",
    "CurrencyResponse",
    "FormInitData",
    "ItemTypeResponse",
    "ErrorInfo",
    "OperationResult",
]
