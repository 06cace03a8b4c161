"""
Claim Repository.

Provides:
- Claim creation with its full item set
- Wholesale item replacement with attachment reparenting
- Status transitions (owner workflow and admin override)
- Draft deletion with attachment cleanup
- Attachment upload for claims and items

Every public operation is one database transaction: it commits on success
and rolls back on any error. Blob deletes for attachments whose rows were
removed happen only after the commit and never fail the operation.
"""

from collections.abc import Iterable, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from expense_claims.core.enums import CREATABLE_STATUSES, AttachmentOwnerKind, ClaimStatus
from expense_claims.models.base import utcnow
from expense_claims.models.claim import Attachment, Claim, ClaimItem
from expense_claims.models.employee import Employee
from expense_claims.schemas.claim import RawItem
from expense_claims.services.access_policy import (
    Caller,
    can_delete,
    can_edit,
    can_set_admin_notes,
    can_view,
    decide_transition,
    is_owner,
)
from expense_claims.services.dates import resolve_partial_date, today_local
from expense_claims.services.money import compute_claim_total, compute_sgd_amount
from expense_claims.services.reference_data import ReferenceDataLookup
from expense_claims.services.storage import AttachmentStore, UploadedFile, validate_upload
from expense_claims.utils.errors import (
    AttachmentUploadError,
    ClaimsError,
    ForbiddenError,
    IllegalStateError,
    IllegalTransitionError,
    NotFoundError,
    ValidationError,
)
from expense_claims.utils.logging import get_logger

logger = get_logger(__name__)

ItemInput = Union[RawItem, Mapping[str, Any]]


# =============================================================================
# Results
# =============================================================================


@dataclass
class CreateClaimResult:
    claim_id: int
    claim: Claim
    items: list[ClaimItem]


@dataclass
class UpdateClaimResult:
    claim_id: int
    total_amount: Decimal
    items: list[ClaimItem]
    relinked_attachments: list[Attachment] = field(default_factory=list)
    orphaned_urls: list[str] = field(default_factory=list)


# =============================================================================
# Input Helpers
# =============================================================================


def coerce_raw_items(items: Iterable[ItemInput]) -> list[RawItem]:
    """Validate item payloads into ``RawItem`` instances."""
    raw_items: list[RawItem] = []
    for index, item in enumerate(items):
        if isinstance(item, RawItem):
            raw_items.append(item)
            continue
        try:
            raw_items.append(RawItem.model_validate(item))
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid item at position {index + 1}",
                index=index,
                errors=e.errors(include_url=False, include_context=False, include_input=False),
            ) from e
    return raw_items


def parse_status(value: Union[ClaimStatus, str]) -> ClaimStatus:
    if isinstance(value, ClaimStatus):
        return value
    try:
        return ClaimStatus(str(value).strip().lower())
    except ValueError as e:
        raise ValidationError(f"Unknown claim status: {value}", status=str(value)) from e


# =============================================================================
# Repository
# =============================================================================


class ClaimRepository:
    """
    Transactional writes on the claim aggregate.

    Args:
        session: Database session; the repository owns commit and rollback
        store: Blob store for attachment files
    """

    def __init__(self, session: AsyncSession, store: AttachmentStore):
        self.session = session
        self.store = store

    # =========================================================================
    # Transaction Helpers
    # =========================================================================

    @asynccontextmanager
    async def _transaction(self, operation: str):
        try:
            yield
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"{operation} rolled back: {e}")
            raise

    async def _purge_blobs(self, urls: Sequence[str]) -> None:
        """Delete blobs whose rows are gone. Failures are logged and ignored."""
        for url in urls:
            try:
                await self.store.delete(url)
            except Exception as e:
                logger.warning(f"Could not delete orphaned blob {url}: {e}")

    async def _get_claim(self, claim_id: int) -> Claim:
        result = await self.session.execute(
            select(Claim).where(Claim.id == claim_id).execution_options(populate_existing=True)
        )
        claim = result.scalar_one_or_none()
        if claim is None:
            raise NotFoundError(f"Claim not found: {claim_id}", claim_id=claim_id)
        return claim

    async def _item_ids(self, claim_id: int) -> list[int]:
        result = await self.session.execute(
            select(ClaimItem.id).where(ClaimItem.claim_id == claim_id).order_by(ClaimItem.id)
        )
        return list(result.scalars().all())

    def _build_items(
        self,
        raw_items: Sequence[RawItem],
        lookup: ReferenceDataLookup,
        employee_id: int,
        today: date,
    ) -> list[ClaimItem]:
        """Resolve codes and dates and price every item. Nothing is added to the session."""
        items = []
        for raw in raw_items:
            items.append(
                ClaimItem(
                    employee_id=employee_id,
                    expense_date=resolve_partial_date(raw.date, today=today),
                    item_type_id=lookup.resolve_item_type(raw.item_no),
                    currency_id=lookup.resolve_currency(raw.currency),
                    amount=raw.amount,
                    rate=raw.rate,
                    sgd_amount=compute_sgd_amount(raw.amount, raw.rate),
                    note=raw.note,
                    details=raw.details,
                    evidence_no=raw.evidence_no,
                )
            )
        return items

    # =========================================================================
    # Create
    # =========================================================================

    async def create_claim(
        self,
        employee_id: int,
        items: Iterable[ItemInput],
        status: Union[ClaimStatus, str] = ClaimStatus.SUBMITTED,
    ) -> CreateClaimResult:
        """
        Create a claim together with all of its items.

        Raises:
            ValidationError: status is not draft/submitted, no items, malformed items,
                or an item lists retained attachments
            NotFoundError: the employee does not exist
            UnknownReferenceCodeError: an item-type or currency code is unknown
            InvalidDateError: an item date cannot be resolved
        """
        claim_status = parse_status(status)
        if claim_status not in CREATABLE_STATUSES:
            raise ValidationError(
                f"Claims can only be created as draft or submitted, got {claim_status.value}",
                status=claim_status.value,
            )
        raw_items = coerce_raw_items(items)
        if not raw_items:
            raise ValidationError("A claim needs at least one item")
        if any(raw.retained_attachments for raw in raw_items):
            raise ValidationError("Retained attachments are only valid when editing a claim")

        async with self._transaction(f"Create claim for employee {employee_id}"):
            if await self.session.get(Employee, employee_id) is None:
                raise NotFoundError(f"Employee not found: {employee_id}", employee_id=employee_id)

            lookup = await ReferenceDataLookup.load(self.session)
            new_items = self._build_items(raw_items, lookup, employee_id, today_local())

            claim = Claim(
                employee_id=employee_id,
                status=claim_status,
                total_amount=compute_claim_total(new_items),
            )
            self.session.add(claim)
            await self.session.flush()

            for item in new_items:
                item.claim_id = claim.id
            self.session.add_all(new_items)
            await self.session.flush()

        logger.info(
            f"Created claim {claim.id} for employee {employee_id} "
            f"({len(new_items)} items, total {claim.total_amount}, {claim_status.value})"
        )
        return CreateClaimResult(claim_id=claim.id, claim=claim, items=new_items)

    # =========================================================================
    # Update
    # =========================================================================

    async def update_claim(
        self,
        claim_id: int,
        caller: Caller,
        items: Iterable[ItemInput],
    ) -> UpdateClaimResult:
        """
        Replace a claim's items wholesale.

        Attachments on the current items are deleted; the ones listed in an
        item's ``retained_attachments`` are recreated on the new item without
        touching their blobs. Blobs of the remaining deleted attachments are
        removed after commit.

        Raises:
            NotFoundError: the claim does not exist
            ForbiddenError: the caller may not edit the claim
            ValidationError: no items, malformed items, or a retained attachment
                that is not on this claim, is renamed, or is listed twice
            UnknownReferenceCodeError, InvalidDateError: as for create
        """
        raw_items = coerce_raw_items(items)
        if not raw_items:
            raise ValidationError("A claim needs at least one item")

        async with self._transaction(f"Update claim {claim_id}"):
            claim = await self._get_claim(claim_id)
            if not can_edit(claim, caller):
                raise ForbiddenError(
                    f"Claim {claim_id} cannot be edited by this user", claim_id=claim_id
                )

            old_item_ids = await self._item_ids(claim_id)
            old_attachments: list[Attachment] = []
            if old_item_ids:
                result = await self.session.execute(
                    select(Attachment).where(Attachment.claim_item_id.in_(old_item_ids))
                )
                old_attachments = list(result.scalars().all())

            old_by_url = {attachment.url: attachment for attachment in old_attachments}
            retained_urls = _check_retained(claim_id, raw_items, old_by_url)
            orphaned_urls = [a.url for a in old_attachments if a.url not in retained_urls]
            # Snapshot before the rows are deleted
            retained_meta = {
                url: (a.file_name, a.file_size, a.file_type)
                for url, a in old_by_url.items()
                if url in retained_urls
            }

            # Phase 1: delete
            if old_item_ids:
                await self.session.execute(
                    delete(Attachment).where(Attachment.claim_item_id.in_(old_item_ids))
                )
                await self.session.execute(
                    delete(ClaimItem).where(ClaimItem.id.in_(old_item_ids))
                )
            await self.session.flush()

            # Phase 2: insert
            lookup = await ReferenceDataLookup.load(self.session)
            new_items = self._build_items(raw_items, lookup, claim.employee_id, today_local())
            for item in new_items:
                item.claim_id = claim_id
            self.session.add_all(new_items)

            claim.total_amount = compute_claim_total(new_items)
            claim.updated_at = utcnow()
            await self.session.flush()

            relinked = self._relink(new_items, raw_items, retained_meta)
            self.session.add_all(relinked)
            await self.session.flush()

        logger.info(
            f"Updated claim {claim_id}: {len(old_item_ids)} items replaced by {len(new_items)}, "
            f"{len(relinked)} attachments relinked, {len(orphaned_urls)} orphaned"
        )
        await self._purge_blobs(orphaned_urls)

        return UpdateClaimResult(
            claim_id=claim_id,
            total_amount=claim.total_amount,
            items=new_items,
            relinked_attachments=relinked,
            orphaned_urls=orphaned_urls,
        )

    @staticmethod
    def _relink(
        new_items: Sequence[ClaimItem],
        raw_items: Sequence[RawItem],
        retained_meta: Mapping[str, tuple[str, int, str]],
    ) -> list[Attachment]:
        relinked = []
        for item, raw in zip(new_items, raw_items):
            for retained in raw.retained_attachments:
                file_name, file_size, file_type = retained_meta[retained.url]
                relinked.append(
                    Attachment(
                        claim_item_id=item.id,
                        file_name=file_name,
                        url=retained.url,
                        file_size=file_size,
                        file_type=file_type,
                    )
                )
        return relinked

    # =========================================================================
    # Status
    # =========================================================================

    async def update_claim_status(
        self,
        claim_id: int,
        caller: Caller,
        new_status: Union[ClaimStatus, str],
        admin_notes: str | None = None,
    ) -> Claim:
        """
        Move a claim to a new status.

        Approving stamps ``approved_at`` (an already approved claim keeps its
        stamp); any other target clears it.

        Raises:
            ValidationError: unknown status
            NotFoundError: the claim does not exist
            ForbiddenError: caller is neither owner nor admin, or a non-admin
                passed admin notes
            IllegalTransitionError: the transition is not permitted for the caller
        """
        target = parse_status(new_status)

        async with self._transaction(f"Status change of claim {claim_id}"):
            claim = await self._get_claim(claim_id)
            if not can_view(claim, caller):
                raise ForbiddenError(
                    f"Claim {claim_id} does not belong to this user", claim_id=claim_id
                )
            if admin_notes is not None and not can_set_admin_notes(caller):
                raise ForbiddenError("Only administrators can set admin notes", claim_id=claim_id)

            current = claim.status
            check = decide_transition(claim, caller, target)
            if not check.allowed:
                raise IllegalTransitionError(
                    check.error, claim_id=claim_id, from_status=current.value, to_status=target.value
                )

            if check.stamps_approval:
                if current != target or claim.approved_at is None:
                    claim.approved_at = utcnow()
            else:
                claim.approved_at = None

            claim.status = target
            if admin_notes is not None:
                claim.admin_notes = admin_notes
            claim.updated_at = utcnow()
            await self.session.flush()

        if check.override:
            logger.warning(
                f"Admin override on claim {claim_id}: {current.value} -> {target.value} "
                f"by employee {caller.employee_id}"
            )
        else:
            logger.info(f"Claim {claim_id}: {current.value} -> {target.value}")
        return claim

    # =========================================================================
    # Delete
    # =========================================================================

    async def delete_claim(self, claim_id: int, caller: Caller) -> None:
        """
        Delete a draft claim with its items and attachments.

        Raises:
            NotFoundError: the claim does not exist
            ForbiddenError: the caller is not the owner
            IllegalStateError: the claim is not a draft
        """
        async with self._transaction(f"Delete claim {claim_id}"):
            claim = await self._get_claim(claim_id)
            if not is_owner(claim, caller):
                raise ForbiddenError(
                    f"Claim {claim_id} does not belong to this user", claim_id=claim_id
                )
            if not can_delete(claim, caller):
                raise IllegalStateError(
                    f"Only draft claims can be deleted, claim {claim_id} is {claim.status.value}",
                    claim_id=claim_id,
                    status=claim.status.value,
                )

            item_ids = await self._item_ids(claim_id)
            owner_filter = Attachment.claim_id == claim_id
            if item_ids:
                owner_filter = owner_filter | Attachment.claim_item_id.in_(item_ids)
            urls = list((await self.session.execute(select(Attachment.url).where(owner_filter))).scalars())

            await self.session.execute(delete(Attachment).where(owner_filter))
            await self.session.execute(delete(ClaimItem).where(ClaimItem.claim_id == claim_id))
            await self.session.delete(claim)
            await self.session.flush()

        logger.info(f"Deleted claim {claim_id} ({len(item_ids)} items, {len(urls)} attachments)")
        await self._purge_blobs(urls)

    # =========================================================================
    # Attachments
    # =========================================================================

    async def attach_files(
        self,
        owner_kind: AttachmentOwnerKind,
        owner_id: int,
        caller: Caller,
        files: Sequence[UploadedFile],
    ) -> list[Attachment]:
        """
        Upload files and link them to a claim or to one of its items.

        Uploads happen before the database transaction. If any upload fails
        the files already stored in this batch are deleted again.

        Raises:
            NotFoundError: the claim or item does not exist
            ForbiddenError: the caller may not edit the owning claim
            ValidationError: no files, or a file type/size is not accepted
            AttachmentUploadError: the store rejected a file
        """
        if not files:
            raise ValidationError("No files to attach")

        claim = await self._resolve_owner_claim(owner_kind, owner_id)
        if not can_edit(claim, caller):
            raise ForbiddenError(
                f"Claim {claim.id} cannot be edited by this user", claim_id=claim.id
            )
        for file in files:
            validate_upload(file)

        stored = []
        try:
            for file in files:
                stored.append((file, await self.store.upload(owner_kind, owner_id, file)))
        except Exception as e:
            await self._purge_blobs([obj.url for _, obj in stored])
            if isinstance(e, ClaimsError):
                raise
            logger.error(f"Upload failed for {owner_kind.value} {owner_id}: {e}")
            raise AttachmentUploadError(f"Could not store attachment: {e}") from e

        attachments = [
            Attachment(
                claim_id=owner_id if owner_kind == AttachmentOwnerKind.CLAIM else None,
                claim_item_id=owner_id if owner_kind == AttachmentOwnerKind.ITEM else None,
                file_name=file.file_name,
                url=obj.url,
                file_size=obj.size,
                file_type=obj.mime_type,
            )
            for file, obj in stored
        ]
        try:
            async with self._transaction(f"Attach files to {owner_kind.value} {owner_id}"):
                self.session.add_all(attachments)
                await self.session.flush()
        except Exception:
            await self._purge_blobs([obj.url for _, obj in stored])
            raise

        logger.info(f"Attached {len(attachments)} files to {owner_kind.value} {owner_id}")
        return attachments

    async def _resolve_owner_claim(self, owner_kind: AttachmentOwnerKind, owner_id: int) -> Claim:
        if owner_kind == AttachmentOwnerKind.CLAIM:
            claim = await self._get_claim(owner_id)
        else:
            item = await self.session.get(ClaimItem, owner_id)
            if item is None:
                raise NotFoundError(f"Claim item not found: {owner_id}", item_id=owner_id)
            claim = await self._get_claim(item.claim_id)
        return claim


def _check_retained(
    claim_id: int,
    raw_items: Sequence[RawItem],
    old_by_url: Mapping[str, Attachment],
) -> set[str]:
    """
    Match retained attachments against the claim's current item attachments.

    Each one must name an existing attachment by both url and file name,
    and may be kept by one new item only.
    """
    retained_urls: set[str] = set()
    for raw in raw_items:
        for retained in raw.retained_attachments:
            existing = old_by_url.get(retained.url)
            if existing is None:
                raise ValidationError(
                    f"Retained attachment {retained.file_name} does not belong to claim {claim_id}",
                    url=retained.url,
                )
            if existing.file_name != retained.file_name:
                raise ValidationError(
                    f"Retained attachment name {retained.file_name} does not match "
                    f"stored file {existing.file_name}",
                    url=retained.url,
                )
            if retained.url in retained_urls:
                raise ValidationError(
                    f"Attachment {retained.file_name} is retained more than once",
                    url=retained.url,
                )
            retained_urls.add(retained.url)
    return retained_urls
