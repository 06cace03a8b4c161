"""
Core Enumerations for the Expense Claims engine.
"""

from enum import Enum


class ClaimStatus(str, Enum):
    """Lifecycle status of an expense claim."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


# Statuses in which the owner may still change the item set
EDITABLE_STATUSES = frozenset({ClaimStatus.DRAFT, ClaimStatus.SUBMITTED})

# Statuses a claim may be created in
CREATABLE_STATUSES = frozenset({ClaimStatus.DRAFT, ClaimStatus.SUBMITTED})


class AttachmentOwnerKind(str, Enum):
    """What an attachment is evidence for."""

    CLAIM = "claim"
    ITEM = "item"


class Department(str, Enum):
    """Departments employees are filed under."""

    DIRECTOR = "Director"
    HR = "HR Department"
    ACCOUNT = "Account Department"
    MARKETING = "Marketing Department"
    TECH = "Tech Department"
    KNOWLEDGE_MANAGEMENT = "Knowledge Management"
