"""
Claim request and response schemas.

``RawItem`` is the strict boundary type for expense lines coming from the
claim form. Amounts and rates are parsed to Decimal; malformed, negative or
non-finite values are rejected rather than coerced. Field names are accepted
in snake_case or in the form's camelCase (``itemNo``, ``evidenceNo``).
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from expense_claims.core.enums import ClaimStatus
from expense_claims.services.money import to_decimal

# Precision and scale of the stored columns
AMOUNT_MAX_DIGITS, AMOUNT_MAX_PLACES = 14, 2
RATE_MAX_DIGITS, RATE_MAX_PLACES = 16, 6


def _decimal_places(number: Decimal) -> int:
    exponent = number.normalize().as_tuple().exponent
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


def _integer_digits(number: Decimal) -> int:
    return number.adjusted() + 1 if number >= 1 else 0


def _parse_money(value: Any, label: str, max_digits: int, max_places: int) -> Decimal:
    try:
        number = to_decimal(value)
    except (InvalidOperation, TypeError) as err:
        raise ValueError(f"{label} must be a decimal number") from err
    if not number.is_finite():
        raise ValueError(f"{label} must be a finite number")
    if number < 0:
        raise ValueError(f"{label} must not be negative")
    if _decimal_places(number) > max_places:
        raise ValueError(f"{label} allows at most {max_places} decimal places")
    if _integer_digits(number) > max_digits - max_places:
        raise ValueError(f"{label} is too large")
    return number


class _FormModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


class RetainedAttachment(_FormModel):
    """An existing attachment the user kept while editing an item."""

    file_name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1)
    file_size: int = Field(default=0, ge=0)
    file_type: str = Field(default="application/octet-stream", max_length=100)


class RawItem(_FormModel):
    """One expense line as submitted by the claim form."""

    date: str = Field(..., min_length=1, description="MM/dd or MM/dd/yyyy")
    item_no: str = Field(..., min_length=1, max_length=10, description="Item type code, e.g. C2")
    currency: str = Field(..., min_length=1, max_length=3, description="Currency code, e.g. SGD")
    amount: Decimal
    rate: Decimal
    note: Optional[str] = None
    details: Optional[str] = None
    evidence_no: Optional[str] = Field(default=None, max_length=100)
    retained_attachments: list[RetainedAttachment] = Field(default_factory=list)

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> Decimal:
        return _parse_money(v, "amount", AMOUNT_MAX_DIGITS, AMOUNT_MAX_PLACES)

    @field_validator("rate", mode="before")
    @classmethod
    def parse_rate(cls, v: Any) -> Decimal:
        return _parse_money(v, "rate", RATE_MAX_DIGITS, RATE_MAX_PLACES)

    @field_validator("item_no", "currency")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.upper()


class ClaimCreateRequest(_FormModel):
    """Payload for creating a claim with its full item set."""

    items: list[RawItem] = Field(..., min_length=1)
    status: ClaimStatus = ClaimStatus.SUBMITTED


class ClaimUpdateRequest(_FormModel):
    """Payload replacing a claim's item set."""

    items: list[RawItem] = Field(..., min_length=1)


class StatusUpdateRequest(_FormModel):
    """Payload for a status change. ``status`` is validated by the repository."""

    status: str
    admin_notes: Optional[str] = None


class ClaimReportRequest(_FormModel):
    """Claims to include in a batch report, in print order."""

    claim_ids: list[int] = Field(..., min_length=1)


# =============================================================================
# Responses
# =============================================================================


class AttachmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    claim_id: Optional[int] = None
    claim_item_id: Optional[int] = None
    file_name: str
    url: str
    file_size: int
    file_type: str
    created_at: Optional[datetime] = None


class ClaimItemResponse(BaseModel):
    """A persisted item as returned by create and update."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    claim_id: int
    expense_date: date
    item_type_id: int
    currency_id: int
    amount: Decimal
    rate: Decimal
    sgd_amount: Decimal
    note: Optional[str] = None
    details: Optional[str] = None
    evidence_no: Optional[str] = None


class ClaimResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    status: ClaimStatus
    total_amount: Decimal
    admin_notes: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CreateClaimResponse(BaseModel):
    claim_id: int
    display_id: str
    status: ClaimStatus
    total_amount: Decimal
    items: list[ClaimItemResponse]


class UpdateClaimResponse(BaseModel):
    claim_id: int
    total_amount: Decimal
    items: list[ClaimItemResponse]
    orphaned_blob_count: int = 0


class EmployeeIdentity(BaseModel):
    id: int
    name: str
    employee_code: int
    department: str


class ClaimItemDetail(BaseModel):
    """An item joined with its reference data and attachments."""

    id: int
    expense_date: date
    item_type_id: int
    item_type_no: str
    item_type_name: str
    currency_id: int
    currency_code: str
    amount: Decimal
    rate: Decimal
    sgd_amount: Decimal
    note: Optional[str] = None
    details: Optional[str] = None
    evidence_no: Optional[str] = None
    attachments: list[AttachmentResponse] = Field(default_factory=list)


class ClaimDetail(BaseModel):
    """Everything a claim page or audit report needs."""

    id: int
    display_id: str
    status: ClaimStatus
    total_amount: Decimal
    admin_notes: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    employee: EmployeeIdentity
    items: list[ClaimItemDetail] = Field(default_factory=list)
    attachments: list[AttachmentResponse] = Field(default_factory=list)


class ClaimSummary(BaseModel):
    """One row of a claim listing."""

    id: int
    display_id: str
    employee_id: int
    employee_name: str
    status: ClaimStatus
    total_amount: Decimal
    item_count: int
    admin_notes: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: datetime


class ClaimListResponse(BaseModel):
    claims: list[ClaimSummary]
    total: int
    limit: int
    offset: int
