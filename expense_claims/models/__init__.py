"""
SQLAlchemy Models for the Expense Claims engine.

Importing this package registers every table on ``Base.metadata``.
"""

from expense_claims.models.base import Base, IntegerIDModel, TimeStampedModel
from expense_claims.models.employee import Employee, UserEmployeeBinding
from expense_claims.models.reference import Currency, ItemType
from expense_claims.models.claim import Attachment, Claim, ClaimItem

__all__ = [
    "Base",
    "IntegerIDModel",
    "TimeStampedModel",
    "Employee",
    "UserEmployeeBinding",
    "Currency",
    "ItemType",
    "Claim",
    "ClaimItem",
    "Attachment",
]
