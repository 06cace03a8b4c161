"""
Claims Service.

Provides:
- The result boundary over the claim repository and query service
- Conversion of ORM rows into response schemas
- Mapping of domain errors to ``OperationResult`` failures

Callers (the API routes, batch scripts) never see a ``ClaimsError`` from
this layer: every operation returns an ``OperationResult`` whose
``http_status`` says how to answer.
"""

from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any, Optional, TypeVar, Union

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from expense_claims.core.enums import AttachmentOwnerKind, ClaimStatus
from expense_claims.schemas.claim import (
    AttachmentResponse,
    ClaimItemResponse,
    ClaimResponse,
    CreateClaimResponse,
    UpdateClaimResponse,
)
from expense_claims.schemas.reference import FormInitData
from expense_claims.schemas.results import OperationResult
from expense_claims.services.access_policy import Caller
from expense_claims.services.claim_query import ClaimQueryService, format_claim_id
from expense_claims.services.claim_repository import ClaimRepository, ItemInput
from expense_claims.services.reference_data import load_form_init_data
from expense_claims.services.storage import AttachmentStore, UploadedFile
from expense_claims.utils.errors import ClaimsError
from expense_claims.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ClaimsService:
    """
    Claim operations for one request.

    Handles:
    - Create, update, status change and delete through ``ClaimRepository``
    - Details, listings and report data through ``ClaimQueryService``
    - Attachment uploads
    """

    def __init__(self, session: AsyncSession, store: AttachmentStore):
        self.session = session
        self.repository = ClaimRepository(session, store)
        self.queries = ClaimQueryService(session)

    async def _execute(
        self,
        operation: str,
        call: Callable[[], Awaitable[T]],
        http_status: int = status.HTTP_200_OK,
    ) -> OperationResult:
        try:
            data = await call()
        except ClaimsError as e:
            logger.info(f"{operation} failed: [{e.code}] {e.message}")
            return OperationResult.fail(e)
        except SQLAlchemyError:
            logger.exception(f"{operation} failed with a database error")
            return OperationResult.internal_error()
        return OperationResult.ok(data, http_status=http_status)

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_claim(
        self,
        caller: Caller,
        items: Iterable[ItemInput],
        claim_status: Union[ClaimStatus, str] = ClaimStatus.SUBMITTED,
    ) -> OperationResult:
        """Create a claim owned by the caller."""

        async def call() -> CreateClaimResponse:
            result = await self.repository.create_claim(caller.employee_id, items, claim_status)
            return CreateClaimResponse(
                claim_id=result.claim_id,
                display_id=format_claim_id(result.claim_id, result.claim.created_at),
                status=result.claim.status,
                total_amount=result.claim.total_amount,
                items=[ClaimItemResponse.model_validate(item) for item in result.items],
            )

        return await self._execute("Create claim", call, status.HTTP_201_CREATED)

    async def update_claim(
        self, claim_id: int, caller: Caller, items: Iterable[ItemInput]
    ) -> OperationResult:
        async def call() -> UpdateClaimResponse:
            result = await self.repository.update_claim(claim_id, caller, items)
            return UpdateClaimResponse(
                claim_id=result.claim_id,
                total_amount=result.total_amount,
                items=[ClaimItemResponse.model_validate(item) for item in result.items],
                orphaned_blob_count=len(result.orphaned_urls),
            )

        return await self._execute(f"Update claim {claim_id}", call)

    async def update_claim_status(
        self,
        claim_id: int,
        caller: Caller,
        new_status: Union[ClaimStatus, str],
        admin_notes: Optional[str] = None,
    ) -> OperationResult:
        async def call() -> ClaimResponse:
            claim = await self.repository.update_claim_status(
                claim_id, caller, new_status, admin_notes
            )
            return ClaimResponse.model_validate(claim)

        return await self._execute(f"Status change of claim {claim_id}", call)

    async def delete_claim(self, claim_id: int, caller: Caller) -> OperationResult:
        async def call() -> dict[str, Any]:
            await self.repository.delete_claim(claim_id, caller)
            return {"claim_id": claim_id, "deleted": True}

        return await self._execute(f"Delete claim {claim_id}", call)

    async def attach_files(
        self,
        owner_kind: AttachmentOwnerKind,
        owner_id: int,
        caller: Caller,
        files: Sequence[UploadedFile],
    ) -> OperationResult:
        async def call() -> list[AttachmentResponse]:
            rows = await self.repository.attach_files(owner_kind, owner_id, caller, files)
            return [AttachmentResponse.model_validate(row) for row in rows]

        return await self._execute(
            f"Attach files to {owner_kind.value} {owner_id}", call, status.HTTP_201_CREATED
        )

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_claim_details(self, claim_id: int, caller: Caller) -> OperationResult:
        return await self._execute(
            f"Get claim {claim_id}", lambda: self.queries.get_claim_details(claim_id, caller)
        )

    async def list_claims(
        self,
        caller: Caller,
        claim_status: Union[ClaimStatus, str, None] = None,
        employee_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> OperationResult:
        return await self._execute(
            "List claims",
            lambda: self.queries.list_claims(caller, claim_status, employee_id, limit, offset),
        )

    async def get_claims_for_report(
        self, claim_ids: Sequence[int], caller: Caller
    ) -> OperationResult:
        return await self._execute(
            "Claim report", lambda: self.queries.get_claims_for_report(claim_ids, caller)
        )

    async def get_form_init_data(self) -> OperationResult:
        async def call() -> FormInitData:
            return FormInitData.model_validate(await load_form_init_data(self.session))

        return await self._execute("Load form data", call)


# =============================================================================
# Factory Functions
# =============================================================================


def get_claims_service(session: AsyncSession, store: AttachmentStore) -> ClaimsService:
    """Get claims service instance."""
    return ClaimsService(session, store)
