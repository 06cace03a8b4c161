"""
Claims API Routes Tests.
Route wiring, status codes and the error envelope, with the service faked.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from expense_claims.api.deps import get_claims_service, get_current_caller
from expense_claims.api.main import app
from expense_claims.api.routes import health
from expense_claims.core.enums import AttachmentOwnerKind, ClaimStatus
from expense_claims.db.connection import get_session
from expense_claims.schemas.claim import (
    AttachmentResponse,
    ClaimItemResponse,
    ClaimListResponse,
    CreateClaimResponse,
    UpdateClaimResponse,
)
from expense_claims.schemas.reference import CurrencyResponse, FormInitData, ItemTypeResponse
from expense_claims.schemas.results import OperationResult
from expense_claims.services.access_policy import Caller
from expense_claims.utils.errors import IllegalStateError, NotFoundError

OWNER = Caller(employee_id=7)
ADMIN = Caller(employee_id=9, is_admin=True)

ITEM = {"date": "03/15", "itemNo": "C2", "currency": "SGD", "amount": "25.00", "rate": "1.0"}


class FakeClaimsService:
    """Returns canned results and records what the routes passed in."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.results: dict[str, OperationResult] = {}

    def _result(self, name: str, *args) -> OperationResult:
        self.calls.append((name, *args))
        return self.results.get(name) or OperationResult.fail(NotFoundError("No canned result"))

    async def create_claim(self, caller, items, claim_status):
        return self._result("create_claim", caller, items, claim_status)

    async def update_claim(self, claim_id, caller, items):
        return self._result("update_claim", claim_id, caller, items)

    async def update_claim_status(self, claim_id, caller, new_status, admin_notes=None):
        return self._result("update_claim_status", claim_id, caller, new_status, admin_notes)

    async def delete_claim(self, claim_id, caller):
        return self._result("delete_claim", claim_id, caller)

    async def attach_files(self, owner_kind, owner_id, caller, files):
        return self._result("attach_files", owner_kind, owner_id, caller, files)

    async def get_claim_details(self, claim_id, caller):
        return self._result("get_claim_details", claim_id, caller)

    async def list_claims(self, caller, claim_status=None, employee_id=None, limit=50, offset=0):
        return self._result("list_claims", caller, claim_status, employee_id, limit, offset)

    async def get_claims_for_report(self, claim_ids, caller):
        return self._result("get_claims_for_report", claim_ids, caller)

    async def get_form_init_data(self):
        return self._result("get_form_init_data")


async def _no_session():
    yield None


@pytest.fixture
def service():
    return FakeClaimsService()


@pytest.fixture
def client(service):
    app.dependency_overrides[get_session] = _no_session
    app.dependency_overrides[get_claims_service] = lambda: service
    app.dependency_overrides[get_current_caller] = lambda: OWNER
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def as_admin():
    app.dependency_overrides[get_current_caller] = lambda: ADMIN


@pytest.mark.api
class TestCreateClaim:
    def test_created(self, client, service):
        service.results["create_claim"] = OperationResult.ok(
            CreateClaimResponse(
                claim_id=1,
                display_id="CL-2025-0001",
                status=ClaimStatus.SUBMITTED,
                total_amount=Decimal("25.00"),
                items=[
                    ClaimItemResponse(
                        id=10,
                        claim_id=1,
                        expense_date=date(2025, 3, 15),
                        item_type_id=5,
                        currency_id=1,
                        amount=Decimal("25.00"),
                        rate=Decimal("1.0"),
                        sgd_amount=Decimal("25.00"),
                    )
                ],
            ),
            http_status=201,
        )

        response = client.post("/api/v1/claims/", json={"items": [ITEM]})

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["claim_id"] == 1
        assert body["display_id"] == "CL-2025-0001"
        assert body["items"][0]["expense_date"] == "2025-03-15"

        name, caller, items, claim_status = service.calls[0]
        assert caller == OWNER
        assert items[0].item_no == "C2"
        assert claim_status == ClaimStatus.SUBMITTED

    def test_draft_status_forwarded(self, client, service):
        client.post("/api/v1/claims/", json={"items": [ITEM], "status": "draft"})
        assert service.calls[0][3] == ClaimStatus.DRAFT

    def test_empty_items_rejected(self, client, service):
        response = client.post("/api/v1/claims/", json={"items": []})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "validation_error"
        assert service.calls == []

    def test_domain_failure_envelope(self, client, service):
        service.results["create_claim"] = OperationResult.fail(
            NotFoundError("Employee not found: 7", employee_id=7)
        )

        response = client.post("/api/v1/claims/", json={"items": [ITEM]})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {
            "success": False,
            "error": {
                "code": "not_found",
                "message": "Employee not found: 7",
                "details": {"employee_id": 7},
            },
        }


@pytest.mark.api
class TestClaimEndpoints:
    def test_list_forwards_query(self, client, service):
        service.results["list_claims"] = OperationResult.ok(
            ClaimListResponse(claims=[], total=0, limit=20, offset=40)
        )

        response = client.get("/api/v1/claims/?status=submitted&limit=20&offset=40")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["total"] == 0
        assert service.calls[0] == ("list_claims", OWNER, ClaimStatus.SUBMITTED, None, 20, 40)

    def test_list_rejects_unknown_status(self, client, service):
        response = client.get("/api/v1/claims/?status=paid")
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert service.calls == []

    def test_replace_items(self, client, service):
        service.results["update_claim"] = OperationResult.ok(
            UpdateClaimResponse(claim_id=3, total_amount=Decimal("0.00"), items=[])
        )

        response = client.put("/api/v1/claims/3/items", json={"items": [ITEM]})

        assert response.status_code == status.HTTP_200_OK
        name, claim_id, caller, items = service.calls[0]
        assert (name, claim_id, caller) == ("update_claim", 3, OWNER)
        assert len(items) == 1

    def test_status_change(self, client, service):
        client.patch(
            "/api/v1/claims/3/status", json={"status": "approved", "adminNotes": "Paid out"}
        )
        assert service.calls[0] == ("update_claim_status", 3, OWNER, "approved", "Paid out")

    def test_delete_conflict(self, client, service):
        service.results["delete_claim"] = OperationResult.fail(
            IllegalStateError("Only draft claims can be deleted", claim_id=3)
        )

        response = client.delete("/api/v1/claims/3")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"]["code"] == "illegal_state"

    def test_database_failure_is_500(self, client, service):
        service.results["get_claim_details"] = OperationResult.internal_error()

        response = client.get("/api/v1/claims/3")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error"]["code"] == "internal_error"


@pytest.mark.api
class TestAttachmentEndpoints:
    def test_item_upload(self, client, service):
        service.results["attach_files"] = OperationResult.ok(
            [
                AttachmentResponse(
                    id=1,
                    claim_item_id=10,
                    file_name="grab.pdf",
                    url="https://files.example.test/wd-attachments/items/10/grab.pdf",
                    file_size=4,
                    file_type="application/pdf",
                    created_at=datetime(2025, 3, 15, tzinfo=UTC),
                )
            ],
            http_status=201,
        )

        response = client.post(
            "/api/v1/claims/items/10/attachments",
            files=[("files", ("grab.pdf", b"%PDF", "application/pdf"))],
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()[0]["file_name"] == "grab.pdf"
        name, owner_kind, owner_id, caller, files = service.calls[0]
        assert owner_kind == AttachmentOwnerKind.ITEM
        assert owner_id == 10
        assert files[0].file_name == "grab.pdf"
        assert files[0].content == b"%PDF"
        assert files[0].content_type == "application/pdf"

    def test_claim_upload_forwards_all_files(self, client, service):
        client.post(
            "/api/v1/claims/3/attachments",
            files=[
                ("files", ("a.pdf", b"a", "application/pdf")),
                ("files", ("b.png", b"b", "image/png")),
            ],
        )
        name, owner_kind, owner_id, caller, files = service.calls[0]
        assert owner_kind == AttachmentOwnerKind.CLAIM
        assert [f.file_name for f in files] == ["a.pdf", "b.png"]

    def test_upload_requires_files(self, client, service):
        response = client.post("/api/v1/claims/3/attachments")
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.api
class TestReportEndpoint:
    def test_requires_admin(self, client, service):
        response = client.post("/api/v1/claims/report", json={"claimIds": [1, 2]})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"]["code"] == "forbidden"
        assert service.calls == []

    def test_admin_report(self, client, service, as_admin):
        service.results["get_claims_for_report"] = OperationResult.ok([])

        response = client.post("/api/v1/claims/report", json={"claimIds": [2, 1]})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == []
        assert service.calls[0] == ("get_claims_for_report", [2, 1], ADMIN)


@pytest.mark.api
class TestAuthentication:
    def test_missing_token(self, client):
        app.dependency_overrides.pop(get_current_caller)

        response = client.get("/api/v1/claims/1")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["error"]["code"] == "unauthenticated"

    def test_invalid_token(self, client):
        app.dependency_overrides.pop(get_current_caller)

        response = client.get(
            "/api/v1/reference-data", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.api
def test_reference_data(client, service):
    service.results["get_form_init_data"] = OperationResult.ok(
        FormInitData(
            item_types=[ItemTypeResponse(id=1, no="C2", name="Transport - Local")],
            currencies=[CurrencyResponse(id=1, code="SGD", name="Singapore Dollar")],
            exchange_rates={"SGD": Decimal("1.0000")},
            functional_currency="SGD",
        )
    )

    response = client.get("/api/v1/reference-data")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["item_types"][0]["no"] == "C2"
    assert body["functional_currency"] == "SGD"


@pytest.mark.api
class TestHealth:
    def test_basic(self, client):
        response = client.get("/health")
        assert response.json() == {"status": "healthy", "service": "expense-claims-api"}

    def test_detailed_reports_failing_store(self, client, monkeypatch):
        async def db_ok():
            return True

        async def store_down():
            return False

        monkeypatch.setattr(health, "check_db_connection", db_ok)
        monkeypatch.setattr(health, "check_attachment_store", store_down)

        body = client.get("/health/detailed").json()

        assert body["status"] == "unhealthy"
        assert body["checks"] == {"database": "healthy", "attachment_store": "unhealthy"}
