"""
Reference data catalogue and seeding helpers.

Item types and currencies are upserted by their code, so running the seed
again updates names and remarks without duplicating rows. Xero account codes
are maintained from the admin screens and are never overwritten here.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from expense_claims.core.enums import Department
from expense_claims.models.employee import Employee
from expense_claims.models.reference import Currency, ItemType
from expense_claims.utils.logging import get_logger

logger = get_logger(__name__)

# (no, name, remark)
ITEM_TYPE_CATALOGUE: list[tuple[str, str, str | None]] = [
    ("A1", "Entertainment", None),
    ("A2", "IT Services & Expense", "ChatGPT,Computer Accessories"),
    ("A3", "Medical Expenses", None),
    ("B1", "Office Expenses", "Giant,Daiso,NTUC"),
    ("B2", "Printing & Stationery", None),
    ("B3", "Postage & Courier", None),
    ("C1", "Telephone & Internet", None),
    ("C2", "Transportation", None),
    ("C3", "Travel - International", "Esim,insurance,allowance"),
    ("C4", "Training & Seminar", None),
    ("D1", "Advertising", None),
    ("E1", "Bank Fees", None),
    ("F1", "Consulting & Account", None),
    ("G1", "Office Equipment", None),
    ("G2", "Computer & Software", None),
    ("G3", "Furniture & Fixtures", None),
    ("H1", "Events & Marketing E", None),
    ("I1", "Gift & Donation", None),
    ("K1", "General Expenses", "ACRA"),
    ("L1", "Insurance", None),
    ("M1", "Legal & Professional E", None),
    ("N1", "Rent", None),
    ("O1", "Recruitment Expense", None),
    ("P1", "Repairs & Maintenance", None),
    ("Q1", "Staffs' Welfare", None),
    ("R1", "Due & Subscriptions", "Xero"),
    ("R2", "Prepayment", None),
    ("R3", "Deposit Paid", None),
]

CURRENCY_CATALOGUE: list[tuple[str, str]] = [
    ("SGD", "Singapore Dollar"),
    ("THB", "Thai Baht"),
    ("PHP", "Philippine Peso"),
    ("VND", "Vietnam Dong"),
    ("CNY", "Chinese Yuan"),
    ("INR", "Indian Rupee"),
    ("IDR", "Indonesian Rupiah"),
    ("USD", "US Dollar"),
    ("MYR", "Malaysian Ringgit"),
]

# (employee_code, name, department)
DEMO_EMPLOYEES: list[tuple[int, str, Department]] = [
    (1, "Andy Zhang", Department.TECH),
    (2, "Lucas Zhao", Department.HR),
    (3, "Celine Chiong", Department.TECH),
    (4, "Eve Li", Department.MARKETING),
]


async def upsert_reference_data(session: AsyncSession) -> dict[str, int]:
    """
    Insert or update every catalogue item type and currency.

    Returns:
        Counts of created and updated rows
    """
    counts = {"created": 0, "updated": 0}

    existing_types = {
        row.no: row for row in (await session.execute(select(ItemType))).scalars().all()
    }
    for no, name, remark in ITEM_TYPE_CATALOGUE:
        row = existing_types.get(no)
        if row is None:
            session.add(ItemType(no=no, name=name, remark=remark))
            counts["created"] += 1
        elif (row.name, row.remark) != (name, remark):
            row.name = name
            row.remark = remark
            counts["updated"] += 1

    existing_currencies = {
        row.code: row for row in (await session.execute(select(Currency))).scalars().all()
    }
    for code, name in CURRENCY_CATALOGUE:
        row = existing_currencies.get(code)
        if row is None:
            session.add(Currency(code=code, name=name))
            counts["created"] += 1
        elif row.name != name:
            row.name = name
            counts["updated"] += 1

    await session.commit()
    logger.info(f"Reference data seeded: {counts['created']} created, {counts['updated']} updated")
    return counts


async def seed_demo_employees(session: AsyncSession) -> int:
    """Add the demo employees that are missing. Returns how many were added."""
    codes = set((await session.execute(select(Employee.employee_code))).scalars().all())
    added = 0
    for code, name, department in DEMO_EMPLOYEES:
        if code in codes:
            continue
        session.add(Employee(employee_code=code, name=name, department=department.value))
        added += 1
    await session.commit()
    logger.info(f"Demo employees seeded: {added} added")
    return added
