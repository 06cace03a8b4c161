"""
Claim Status State Machine.

Provides:
- The declarative table of status transitions and who may perform them
- Transition validation, including which changes stamp the approval time

State Diagram:
    DRAFT -> SUBMITTED            (owner)
    SUBMITTED -> DRAFT            (owner, withdraw)
    SUBMITTED -> APPROVED         (admin)
    SUBMITTED -> REJECTED         (admin)
    any -> any                    (admin override)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from expense_claims.core.enums import ClaimStatus
from expense_claims.utils.logging import get_logger

logger = get_logger(__name__)


class Actor(str, Enum):
    """Role a caller acts in with respect to one claim."""

    OWNER = "owner"
    ADMIN = "admin"


@dataclass(frozen=True)
class Transition:
    """A permitted status change."""

    from_status: ClaimStatus
    to_status: ClaimStatus
    actor: Actor
    stamps_approval: bool = False


@dataclass
class TransitionResult:
    """Result of a transition check."""

    allowed: bool
    from_status: ClaimStatus
    to_status: ClaimStatus
    override: bool = False
    stamps_approval: bool = False
    error: Optional[str] = None


# =============================================================================
# Valid Transitions Definition
# =============================================================================


VALID_TRANSITIONS: list[Transition] = [
    Transition(ClaimStatus.DRAFT, ClaimStatus.SUBMITTED, Actor.OWNER),
    Transition(ClaimStatus.SUBMITTED, ClaimStatus.DRAFT, Actor.OWNER),
    Transition(ClaimStatus.SUBMITTED, ClaimStatus.APPROVED, Actor.ADMIN, stamps_approval=True),
    Transition(ClaimStatus.SUBMITTED, ClaimStatus.REJECTED, Actor.ADMIN),
]


# =============================================================================
# State Machine
# =============================================================================


class ClaimStateMachine:
    """
    Validates status changes against the transition table.

    Admins may additionally move a claim between any two known statuses
    (override), e.g. to reopen an approved claim.
    """

    def __init__(self, transitions: list[Transition] | None = None):
        self._transitions: dict[tuple[ClaimStatus, ClaimStatus], Transition] = {}
        self._approval_targets: set[ClaimStatus] = set()

        for transition in transitions or VALID_TRANSITIONS:
            self._transitions[(transition.from_status, transition.to_status)] = transition
            if transition.stamps_approval:
                self._approval_targets.add(transition.to_status)

    def get_transition(
        self,
        from_status: ClaimStatus,
        to_status: ClaimStatus,
    ) -> Optional[Transition]:
        return self._transitions.get((from_status, to_status))

    def check(
        self,
        from_status: ClaimStatus,
        to_status: ClaimStatus,
        *,
        is_owner: bool,
        is_admin: bool,
    ) -> TransitionResult:
        """
        Decide whether a caller may move a claim from one status to another.

        A regular transition is allowed when the caller holds its role.
        Admins fall back to the override for anything else. Overrides into a
        status that a regular transition stamps approval for stamp it too.
        """
        transition = self.get_transition(from_status, to_status)
        stamps = to_status in self._approval_targets

        if transition is not None:
            if (transition.actor == Actor.OWNER and is_owner) or (
                transition.actor == Actor.ADMIN and is_admin
            ):
                return TransitionResult(True, from_status, to_status, stamps_approval=stamps)

        if is_admin:
            return TransitionResult(
                True, from_status, to_status, override=True, stamps_approval=stamps
            )

        return TransitionResult(
            False,
            from_status,
            to_status,
            error=f"Invalid transition: {from_status.value} -> {to_status.value}",
        )


_state_machine: Optional[ClaimStateMachine] = None


def get_claim_state_machine() -> ClaimStateMachine:
    """Get singleton state machine instance."""
    global _state_machine
    if _state_machine is None:
        _state_machine = ClaimStateMachine()
    return _state_machine
