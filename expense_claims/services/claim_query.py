"""
Claim Query Service.

Read-only views of claims: the detail page, listings and batch report data.
Nothing here writes to the database.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from expense_claims.api.config import settings
from expense_claims.core.enums import ClaimStatus
from expense_claims.models.claim import Attachment, Claim, ClaimItem
from expense_claims.schemas.claim import (
    AttachmentResponse,
    ClaimDetail,
    ClaimItemDetail,
    ClaimListResponse,
    ClaimSummary,
    EmployeeIdentity,
)
from expense_claims.services.access_policy import Caller, can_view
from expense_claims.services.claim_repository import parse_status
from expense_claims.utils.errors import ForbiddenError, NotFoundError, ValidationError
from expense_claims.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LIST_LIMIT = 50


def format_claim_id(claim_id: int, created_at: Optional[datetime] = None) -> str:
    """
    Human-facing claim number.

    Format: CL-{YEAR}-{ID:04d}
    Example: CL-2025-0042
    """
    year = (created_at or datetime.now()).year
    return f"CL-{year}-{claim_id:04d}"


def _detail_options():
    return (
        selectinload(Claim.employee),
        selectinload(Claim.attachments),
        selectinload(Claim.items).selectinload(ClaimItem.item_type),
        selectinload(Claim.items).selectinload(ClaimItem.currency),
        selectinload(Claim.items).selectinload(ClaimItem.attachments),
    )


def _attachments(rows: Sequence[Attachment]) -> list[AttachmentResponse]:
    return [AttachmentResponse.model_validate(row) for row in rows]


def build_claim_detail(claim: Claim) -> ClaimDetail:
    """Flatten a fully loaded claim into its detail view."""
    items = [
        ClaimItemDetail(
            id=item.id,
            expense_date=item.expense_date,
            item_type_id=item.item_type_id,
            item_type_no=item.item_type.no,
            item_type_name=item.item_type.name,
            currency_id=item.currency_id,
            currency_code=item.currency.code,
            amount=item.amount,
            rate=item.rate,
            sgd_amount=item.sgd_amount,
            note=item.note,
            details=item.details,
            evidence_no=item.evidence_no,
            attachments=_attachments(item.attachments),
        )
        for item in claim.items
    ]
    employee = claim.employee
    return ClaimDetail(
        id=claim.id,
        display_id=format_claim_id(claim.id, claim.created_at),
        status=claim.status,
        total_amount=claim.total_amount,
        admin_notes=claim.admin_notes,
        approved_at=claim.approved_at,
        created_at=claim.created_at,
        updated_at=claim.updated_at,
        employee=EmployeeIdentity(
            id=employee.id,
            name=employee.name,
            employee_code=employee.employee_code,
            department=employee.department,
        ),
        items=items,
        attachments=_attachments(claim.attachments),
    )


class ClaimQueryService:
    """Side-effect free claim reads, filtered by what the caller may see."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _load_claims(self, claim_ids: Sequence[int]) -> dict[int, Claim]:
        if not claim_ids:
            return {}
        result = await self.session.execute(
            select(Claim)
            .where(Claim.id.in_(claim_ids))
            .options(*_detail_options())
            .execution_options(populate_existing=True)
        )
        return {claim.id: claim for claim in result.scalars().all()}

    async def get_claim_details(self, claim_id: int, caller: Caller) -> ClaimDetail:
        """
        Load a claim with its items, reference data, attachments and owner.

        Raises:
            NotFoundError: the claim does not exist
            ForbiddenError: the caller is neither the owner nor an admin
        """
        claim = (await self._load_claims([claim_id])).get(claim_id)
        if claim is None:
            raise NotFoundError(f"Claim not found: {claim_id}", claim_id=claim_id)
        if not can_view(claim, caller):
            raise ForbiddenError(f"Claim {claim_id} does not belong to this user", claim_id=claim_id)
        return build_claim_detail(claim)

    async def list_claims(
        self,
        caller: Caller,
        status: Union[ClaimStatus, str, None] = None,
        employee_id: Optional[int] = None,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> ClaimListResponse:
        """
        List claims newest first.

        Employees only see their own claims; admins see everyone's and may
        filter by employee.
        """
        if limit < 1 or offset < 0:
            raise ValidationError("limit must be positive and offset non-negative")
        limit = min(limit, settings.CLAIM_LIST_MAX_LIMIT)

        if not caller.is_admin:
            if employee_id is not None and employee_id != caller.employee_id:
                raise ForbiddenError("Employees can only list their own claims")
            employee_id = caller.employee_id

        query = select(Claim)
        if employee_id is not None:
            query = query.where(Claim.employee_id == employee_id)
        if status is not None:
            query = query.where(Claim.status == parse_status(status))

        total = (
            await self.session.execute(select(func.count()).select_from(query.subquery()))
        ).scalar_one()

        item_count = (
            select(func.count(ClaimItem.id))
            .where(ClaimItem.claim_id == Claim.id)
            .correlate(Claim)
            .scalar_subquery()
        )
        result = await self.session.execute(
            query.add_columns(item_count)
            .options(selectinload(Claim.employee))
            .order_by(Claim.created_at.desc(), Claim.id.desc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )

        claims = [
            ClaimSummary(
                id=claim.id,
                display_id=format_claim_id(claim.id, claim.created_at),
                employee_id=claim.employee_id,
                employee_name=claim.employee.name,
                status=claim.status,
                total_amount=claim.total_amount,
                item_count=count,
                admin_notes=claim.admin_notes,
                approved_at=claim.approved_at,
                created_at=claim.created_at,
            )
            for claim, count in result.all()
        ]
        return ClaimListResponse(claims=claims, total=total, limit=limit, offset=offset)

    async def get_claims_for_report(
        self, claim_ids: Sequence[int], caller: Caller
    ) -> list[ClaimDetail]:
        """
        Detail views for a batch report, in the requested order.

        Ids that do not exist are skipped. Admin only.
        """
        if not caller.is_admin:
            raise ForbiddenError("Only administrators can build claim reports")

        requested = list(dict.fromkeys(claim_ids))
        claims = await self._load_claims(requested)
        missing = [claim_id for claim_id in requested if claim_id not in claims]
        if missing:
            logger.info(f"Report skipped missing claims: {missing}")
        return [build_claim_detail(claims[claim_id]) for claim_id in requested if claim_id in claims]
