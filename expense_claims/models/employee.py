"""
Employee and identity-binding models.

Employees are maintained by the admin screens; the core only reads them to
show who owns a claim and to resolve an authenticated user to an employee.
"""

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_claims.models.base import Base, IntegerIDModel, TimeStampedModel


class Employee(Base, IntegerIDModel, TimeStampedModel):
    """An employee who can own expense claims."""

    __tablename__ = "employees"

    name: Mapped[str] = mapped_column(String(60), nullable=False)
    employee_code: Mapped[int] = mapped_column(Integer, nullable=False, unique=True, index=True)
    department: Mapped[str] = mapped_column(
        String(60),
        nullable=False,
        comment="Department name (free text, see core.enums.Department for the usual values)",
    )

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, code={self.employee_code}, name={self.name})>"


class UserEmployeeBinding(Base, IntegerIDModel, TimeStampedModel):
    """Links an authenticated user id to the employee they act as."""

    __tablename__ = "user_employee_bindings"

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
        comment="Identity-provider user id (token subject)",
    )
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    employee: Mapped[Employee] = relationship(Employee, lazy="joined")
