"""
Claim aggregate models: Claim, ClaimItem and Attachment.

A Claim owns its items and its claim-level attachments; each item owns its
item-level attachments. The aggregate is the unit of transactional mutation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_claims.core.enums import ClaimStatus
from expense_claims.models.base import Base, IntegerIDModel, TimeStampedModel
from expense_claims.models.employee import Employee
from expense_claims.models.reference import Currency, ItemType


class Claim(Base, IntegerIDModel, TimeStampedModel):
    """An employee's expense reimbursement request."""

    __tablename__ = "claims"

    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Owning employee",
    )
    status: Mapped[ClaimStatus] = mapped_column(
        Enum(
            ClaimStatus,
            name="claim_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        default=ClaimStatus.DRAFT,
        nullable=False,
        index=True,
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        comment="Sum of item SGD amounts",
    )
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    employee: Mapped[Employee] = relationship(Employee)
    items: Mapped[list["ClaimItem"]] = relationship(
        "ClaimItem",
        back_populates="claim",
        order_by="ClaimItem.id",
        passive_deletes=True,
    )
    attachments: Mapped[list["Attachment"]] = relationship(
        "Attachment",
        primaryjoin="Claim.id == Attachment.claim_id",
        order_by="Attachment.id",
        passive_deletes=True,
        viewonly=True,
    )

    __table_args__ = (
        Index("ix_claims_employee_status", "employee_id", "status"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<Claim(id={self.id}, employee={self.employee_id}, status={self.status.value})>"


class ClaimItem(Base, IntegerIDModel, TimeStampedModel):
    """One dated, categorized, priced line within a claim."""

    __tablename__ = "claim_items"

    claim_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("claims.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.id", ondelete="RESTRICT"),
        nullable=False,
        comment="Denormalized claim owner",
    )
    expense_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    item_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("item_type.id", ondelete="RESTRICT"), nullable=False
    )
    currency_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("currency.id", ondelete="RESTRICT"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, comment="Amount in the original currency"
    )
    rate: Mapped[Decimal] = mapped_column(
        Numeric(16, 6), nullable=False, comment="Exchange rate to SGD"
    )
    sgd_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, comment="amount x rate, rounded half up"
    )
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    evidence_no: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Item ids are never reused after a wholesale replacement
    __table_args__ = {"sqlite_autoincrement": True}

    claim: Mapped[Claim] = relationship(Claim, back_populates="items")
    item_type: Mapped[ItemType] = relationship(ItemType)
    currency: Mapped[Currency] = relationship(Currency)
    attachments: Mapped[list["Attachment"]] = relationship(
        "Attachment",
        primaryjoin="ClaimItem.id == Attachment.claim_item_id",
        order_by="Attachment.id",
        passive_deletes=True,
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<ClaimItem(id={self.id}, claim={self.claim_id}, sgd={self.sgd_amount})>"


class Attachment(Base, IntegerIDModel, TimeStampedModel):
    """
    A stored file linked to either a claim or one of its items.

    Both owner columns may be NULL only while an upload is being linked.
    """

    __tablename__ = "attachments"

    claim_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("claims.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    claim_item_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("claim_items.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    file_type: Mapped[str] = mapped_column(
        String(100), nullable=False, default="application/octet-stream"
    )

    __table_args__ = (
        CheckConstraint(
            "NOT (claim_id IS NOT NULL AND claim_item_id IS NOT NULL)",
            name="ck_attachments_single_owner",
        ),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        owner = f"claim={self.claim_id}" if self.claim_id else f"item={self.claim_item_id}"
        return f"<Attachment(id={self.id}, {owner}, file={self.file_name})>"
