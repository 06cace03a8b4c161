"""
Reference data models: expense item types and currencies.
"""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from expense_claims.models.base import Base, IntegerIDModel


class ItemType(Base, IntegerIDModel):
    """Expense category, addressed by its short code (e.g. ``C2``)."""

    __tablename__ = "item_type"

    no: Mapped[str] = mapped_column(String(10), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    remark: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    xero_code: Mapped[Optional[str]] = mapped_column(
        String(10), nullable=True, comment="Xero account code used by the accounting export"
    )

    def __repr__(self) -> str:
        return f"<ItemType(no={self.no}, name={self.name})>"


class Currency(Base, IntegerIDModel):
    """ISO currency an expense may be paid in."""

    __tablename__ = "currency"

    code: Mapped[str] = mapped_column(String(3), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(60), nullable=False)

    def __repr__(self) -> str:
        return f"<Currency(code={self.code})>"
