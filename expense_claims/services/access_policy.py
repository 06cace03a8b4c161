"""
Access Policy.

Pure predicates deciding what a caller may do to a claim. The repository
and the query service both consult these; no other module makes
authorization decisions about claims.
"""

from dataclasses import dataclass
from typing import Protocol

from expense_claims.core.enums import EDITABLE_STATUSES, ClaimStatus
from expense_claims.services.claim_state_machine import TransitionResult, get_claim_state_machine


class ClaimLike(Protocol):
    employee_id: int
    status: ClaimStatus


@dataclass(frozen=True)
class Caller:
    """The authenticated employee performing an operation."""

    employee_id: int
    is_admin: bool = False


def is_owner(claim: ClaimLike, caller: Caller) -> bool:
    return claim.employee_id == caller.employee_id


def can_view(claim: ClaimLike, caller: Caller) -> bool:
    return caller.is_admin or is_owner(claim, caller)


def can_edit(claim: ClaimLike, caller: Caller) -> bool:
    """Admins may always replace items; owners only before a decision."""
    if caller.is_admin:
        return True
    return is_owner(claim, caller) and claim.status in EDITABLE_STATUSES


def can_delete(claim: ClaimLike, caller: Caller) -> bool:
    """Only the owner deletes, and only drafts."""
    return is_owner(claim, caller) and claim.status == ClaimStatus.DRAFT


def decide_transition(claim: ClaimLike, caller: Caller, to_status: ClaimStatus) -> TransitionResult:
    """
    Whether the caller may move the claim to ``to_status``, and how.

    The result says if the change is an admin override and whether it
    stamps the approval time.
    """
    return get_claim_state_machine().check(
        claim.status,
        to_status,
        is_owner=is_owner(claim, caller),
        is_admin=caller.is_admin,
    )


def can_set_admin_notes(caller: Caller) -> bool:
    return caller.is_admin
