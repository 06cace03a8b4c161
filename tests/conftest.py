"""
Pytest Configuration and Fixtures.
Shared test fixtures for all test modules.
"""

import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-expense-claims-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from expense_claims.core.enums import AttachmentOwnerKind, Department
from expense_claims.db.seed import upsert_reference_data
from expense_claims.models import Base, Employee, UserEmployeeBinding
from expense_claims.services.access_policy import Caller
from expense_claims.services.claim_repository import ClaimRepository
from expense_claims.services.claim_query import ClaimQueryService
from expense_claims.services.storage import StoredObject, UploadedFile
from expense_claims.utils.errors import AttachmentUploadError

OWNER_ID = 7
OTHER_ID = 8
ADMIN_ID = 9


class FakeAttachmentStore:
    """In-memory attachment store recording every call."""

    base_url = "https://files.example.test/wd-attachments"

    def __init__(self):
        self.uploads: list[tuple[AttachmentOwnerKind, int, str]] = []
        self.deleted: list[str] = []
        self.fail_upload_names: set[str] = set()
        self.fail_delete = False

    async def upload(
        self, owner_kind: AttachmentOwnerKind, owner_id: int, file: UploadedFile
    ) -> StoredObject:
        if file.file_name in self.fail_upload_names:
            raise AttachmentUploadError(f"Could not store {file.file_name}")
        self.uploads.append((owner_kind, owner_id, file.file_name))
        url = f"{self.base_url}/{owner_kind.value}s/{owner_id}/{len(self.uploads)}_{file.file_name}"
        return StoredObject(
            url=url,
            size=file.size,
            mime_type=file.content_type or "application/octet-stream",
        )

    async def delete(self, url: str) -> None:
        if self.fail_delete:
            raise ConnectionError("store unavailable")
        self.deleted.append(url)


def make_file(name: str = "receipt.pdf", content: bytes = b"%PDF-1.4 test") -> UploadedFile:
    return UploadedFile(file_name=name, content=content, content_type="application/pdf")


def make_item(**overrides) -> dict:
    item = {
        "date": "03/15",
        "itemNo": "C2",
        "currency": "SGD",
        "amount": "25.00",
        "rate": "1.0",
    }
    item.update(overrides)
    return item


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    """Session configured like the application's session maker, with seed data."""
    session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with session_maker() as session:
        await upsert_reference_data(session)
        session.add_all(
            [
                Employee(
                    id=OWNER_ID, name="Andy Zhang", employee_code=1, department=Department.TECH.value
                ),
                Employee(
                    id=OTHER_ID, name="Eve Li", employee_code=4, department=Department.MARKETING.value
                ),
                Employee(
                    id=ADMIN_ID, name="Lucas Zhao", employee_code=2, department=Department.HR.value
                ),
            ]
        )
        session.add_all(
            [
                UserEmployeeBinding(user_id="user-owner", employee_id=OWNER_ID, is_admin=False),
                UserEmployeeBinding(user_id="user-admin", employee_id=ADMIN_ID, is_admin=True),
            ]
        )
        await session.commit()
        yield session


@pytest.fixture
def item_data():
    """Factory for claim-form item payloads."""
    return make_item


@pytest.fixture
def upload():
    """Factory for uploaded files."""
    return make_file


@pytest.fixture
def store():
    return FakeAttachmentStore()


@pytest.fixture
def repository(session, store):
    return ClaimRepository(session, store)


@pytest.fixture
def queries(session):
    return ClaimQueryService(session)


@pytest.fixture
def owner():
    return Caller(employee_id=OWNER_ID)


@pytest.fixture
def other_employee():
    return Caller(employee_id=OTHER_ID)


@pytest.fixture
def admin():
    return Caller(employee_id=ADMIN_ID, is_admin=True)


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "api: mark test as an API test")
