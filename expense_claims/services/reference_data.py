"""
Reference Data Lookup.

Loads the item-type and currency tables once per operation and resolves the
short codes used on the claim form to their row ids. Lookups are always done
against a fresh load inside the caller's transaction, so a code removed by
an admin since the form was rendered is rejected instead of written.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from expense_claims.api.config import settings
from expense_claims.models.reference import Currency, ItemType
from expense_claims.utils.errors import UnknownReferenceCodeError

# Default SGD conversion rates offered by the claim form until a rate feed is
# wired in. Users may override the rate per item.
DEFAULT_EXCHANGE_RATES: dict[str, Decimal] = {
    "SGD": Decimal("1.0000"),
    "THB": Decimal("0.0270"),
    "PHP": Decimal("0.0240"),
    "VND": Decimal("0.000041"),
    "CNY": Decimal("0.1950"),
    "INR": Decimal("0.0120"),
    "IDR": Decimal("0.000067"),
    "USD": Decimal("1.3400"),
    "MYR": Decimal("0.2950"),
}


@dataclass
class ReferenceDataLookup:
    """In-memory code maps for one operation."""

    item_types: dict[str, ItemType] = field(default_factory=dict)
    currencies: dict[str, Currency] = field(default_factory=dict)

    @classmethod
    async def load(cls, session: AsyncSession) -> "ReferenceDataLookup":
        item_rows = (await session.execute(select(ItemType))).scalars().all()
        currency_rows = (await session.execute(select(Currency))).scalars().all()
        return cls(
            item_types={row.no.upper(): row for row in item_rows},
            currencies={row.code.upper(): row for row in currency_rows},
        )

    def resolve_item_type(self, code: str) -> int:
        row = self.item_types.get(code.strip().upper())
        if row is None:
            raise UnknownReferenceCodeError(
                f"Unknown item type code: {code}", kind="item_type", code=code
            )
        return row.id

    def resolve_currency(self, code: str) -> int:
        row = self.currencies.get(code.strip().upper())
        if row is None:
            raise UnknownReferenceCodeError(
                f"Unknown currency code: {code}", kind="currency", code=code
            )
        return row.id


async def load_form_init_data(session: AsyncSession) -> dict:
    """Item types, currencies and default rates for the claim form, in display order."""
    item_types = (await session.execute(select(ItemType).order_by(ItemType.no))).scalars().all()
    currencies = (await session.execute(select(Currency).order_by(Currency.code))).scalars().all()
    return {
        "item_types": list(item_types),
        "currencies": list(currencies),
        "exchange_rates": dict(DEFAULT_EXCHANGE_RATES),
        "functional_currency": settings.FUNCTIONAL_CURRENCY,
    }
