"""
Reference data schemas served to the claim form.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ItemTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    no: str
    name: str
    remark: Optional[str] = None
    xero_code: Optional[str] = None


class CurrencyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str


class FormInitData(BaseModel):
    """Everything the claim form loads once: categories, currencies and default rates."""

    item_types: list[ItemTypeResponse]
    currencies: list[CurrencyResponse]
    exchange_rates: dict[str, Decimal]
    functional_currency: str
