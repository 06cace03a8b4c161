"""
Reference Data Routes
Item types, currencies and default exchange rates for the claim form
"""

from typing import Any

from fastapi import APIRouter, Depends

from expense_claims.api.deps import get_claims_service, get_current_caller
from expense_claims.api.responses import unwrap_result
from expense_claims.schemas.reference import FormInitData
from expense_claims.services.claims_service import ClaimsService

router = APIRouter(
    prefix="/api/v1/reference-data",
    tags=["reference-data"],
    dependencies=[Depends(get_current_caller)],
)


@router.get("", response_model=FormInitData)
async def get_reference_data(service: ClaimsService = Depends(get_claims_service)) -> Any:
    """Everything the claim form loads once."""
    return unwrap_result(await service.get_form_init_data())
