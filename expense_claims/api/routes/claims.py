"""
Claims API Endpoints.

Provides:
- Claim creation with its item set
- Item replacement, status changes and draft deletion
- Claim details, listings and batch report data
- Claim-level and item-level attachment uploads

Every endpoint delegates to ``ClaimsService`` and turns a failed
``OperationResult`` into ``{"success": false, "error": {...}}`` with the
mapped HTTP status.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status

from expense_claims.api.deps import get_admin_caller, get_claims_service, get_current_caller
from expense_claims.api.responses import unwrap_result
from expense_claims.core.enums import AttachmentOwnerKind, ClaimStatus
from expense_claims.schemas.claim import (
    AttachmentResponse,
    ClaimCreateRequest,
    ClaimDetail,
    ClaimListResponse,
    ClaimReportRequest,
    ClaimResponse,
    ClaimUpdateRequest,
    CreateClaimResponse,
    StatusUpdateRequest,
    UpdateClaimResponse,
)
from expense_claims.services.access_policy import Caller
from expense_claims.services.claims_service import ClaimsService
from expense_claims.services.storage import UploadedFile
from expense_claims.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/claims",
    tags=["claims"],
)


async def _read_uploads(files: list[UploadFile]) -> list[UploadedFile]:
    uploads = []
    for upload in files:
        uploads.append(
            UploadedFile(
                file_name=upload.filename or "",
                content=await upload.read(),
                content_type=upload.content_type,
            )
        )
    logger.debug(f"Received {len(uploads)} upload(s)")
    return uploads


# =============================================================================
# Claims
# =============================================================================


@router.post(
    "/",
    response_model=CreateClaimResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_claim(
    body: ClaimCreateRequest,
    caller: Caller = Depends(get_current_caller),
    service: ClaimsService = Depends(get_claims_service),
) -> Any:
    """Create a claim for the calling employee, as draft or submitted."""
    return unwrap_result(await service.create_claim(caller, body.items, body.status))


@router.get("/", response_model=ClaimListResponse)
async def list_claims(
    claim_status: Optional[ClaimStatus] = Query(None, alias="status"),
    employee_id: Optional[int] = Query(None, description="Admin only: filter by employee"),
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(get_current_caller),
    service: ClaimsService = Depends(get_claims_service),
) -> Any:
    """List claims newest first. Employees see only their own."""
    return unwrap_result(
        await service.list_claims(caller, claim_status, employee_id, limit, offset)
    )


@router.post("/report", response_model=list[ClaimDetail])
async def claims_report(
    body: ClaimReportRequest,
    caller: Caller = Depends(get_admin_caller),
    service: ClaimsService = Depends(get_claims_service),
) -> Any:
    """Detail data for a batch report, in the requested order."""
    return unwrap_result(await service.get_claims_for_report(body.claim_ids, caller))


@router.get("/{claim_id}", response_model=ClaimDetail)
async def get_claim(
    claim_id: int,
    caller: Caller = Depends(get_current_caller),
    service: ClaimsService = Depends(get_claims_service),
) -> Any:
    return unwrap_result(await service.get_claim_details(claim_id, caller))


@router.put("/{claim_id}/items", response_model=UpdateClaimResponse)
async def replace_claim_items(
    claim_id: int,
    body: ClaimUpdateRequest,
    caller: Caller = Depends(get_current_caller),
    service: ClaimsService = Depends(get_claims_service),
) -> Any:
    """
    Replace the claim's items.

    Attachments listed under an item's ``retainedAttachments`` stay with the
    new item; all other attachments of the old items are removed.
    """
    return unwrap_result(await service.update_claim(claim_id, caller, body.items))


@router.patch("/{claim_id}/status", response_model=ClaimResponse)
async def update_claim_status(
    claim_id: int,
    body: StatusUpdateRequest,
    caller: Caller = Depends(get_current_caller),
    service: ClaimsService = Depends(get_claims_service),
) -> Any:
    return unwrap_result(
        await service.update_claim_status(claim_id, caller, body.status, body.admin_notes)
    )


@router.delete("/{claim_id}")
async def delete_claim(
    claim_id: int,
    caller: Caller = Depends(get_current_caller),
    service: ClaimsService = Depends(get_claims_service),
) -> Any:
    """Delete a draft claim with its items and attachments."""
    return unwrap_result(await service.delete_claim(claim_id, caller))


# =============================================================================
# Attachments
# =============================================================================


@router.post(
    "/{claim_id}/attachments",
    response_model=list[AttachmentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def upload_claim_attachments(
    claim_id: int,
    files: list[UploadFile] = File(...),
    caller: Caller = Depends(get_current_caller),
    service: ClaimsService = Depends(get_claims_service),
) -> Any:
    uploads = await _read_uploads(files)
    return unwrap_result(
        await service.attach_files(AttachmentOwnerKind.CLAIM, claim_id, caller, uploads)
    )


@router.post(
    "/items/{item_id}/attachments",
    response_model=list[AttachmentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def upload_item_attachments(
    item_id: int,
    files: list[UploadFile] = File(...),
    caller: Caller = Depends(get_current_caller),
    service: ClaimsService = Depends(get_claims_service),
) -> Any:
    uploads = await _read_uploads(files)
    return unwrap_result(
        await service.attach_files(AttachmentOwnerKind.ITEM, item_id, caller, uploads)
    )
